from stepwright.planner.adaptive import AdaptivePlanner
from stepwright.planner.llm_planner import LLMPlanner, fallback_plan_name
from stepwright.planner.views import (
    Action,
    Assertion,
    Plan,
    PlanPhase,
    PlanRefinement,
    RefinedStep,
    Step,
    TestScenario,
)

__all__ = [
    'Action',
    'AdaptivePlanner',
    'Assertion',
    'LLMPlanner',
    'Plan',
    'PlanPhase',
    'PlanRefinement',
    'RefinedStep',
    'Step',
    'TestScenario',
    'fallback_plan_name',
]
