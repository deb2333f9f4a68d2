from stepwright.discovery.strategies.base import SEMANTIC_CONCEPTS, DiscoveryStrategy, is_semantic_concept
from stepwright.discovery.strategies.llm_dom import LLMDomStrategy
from stepwright.discovery.strategies.vision import VisionStrategy, visual_concept_selector

__all__ = [
    'DiscoveryStrategy',
    'LLMDomStrategy',
    'SEMANTIC_CONCEPTS',
    'VisionStrategy',
    'is_semantic_concept',
    'visual_concept_selector',
]
