from stepwright.dom.cache import CacheEntry, StructureCache
from stepwright.dom.extractor import extract_structure
from stepwright.dom.terms import extract_key_phrases, extract_key_terms, strip_article
from stepwright.dom.views import BoundingBox, ElementDescriptor

__all__ = [
	'BoundingBox',
	'CacheEntry',
	'ElementDescriptor',
	'StructureCache',
	'extract_key_phrases',
	'extract_key_terms',
	'extract_structure',
	'strip_article',
]
