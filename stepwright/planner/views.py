from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator

from stepwright.discovery.views import INTERACTION_KINDS, ElementDiscoveryResult
from stepwright.timing import utc_now

PlanPhase = Literal['initial', 'refined', 'adaptive']

_PHASE_ORDER: dict[str, int] = {'initial': 0, 'refined': 1, 'adaptive': 2}


class TestScenario(BaseModel):
    __test__ = False  # not a pytest class

    id: str = Field(default_factory=lambda: f'scenario-{uuid.uuid4().hex[:8]}')
    name: str = ''
    description: str
    raw_input: Optional[str] = None


class Action(BaseModel):
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_verification(self) -> bool:
        return self.name.startswith('verify_')

    @property
    def is_interaction(self) -> bool:
        """click/type/hover, plus element verifications that also need a locator."""
        return self.name in INTERACTION_KINDS or self.name.startswith('verify_element')

    @property
    def selector(self) -> Optional[str]:
        value = self.arguments.get('selector')
        return value if isinstance(value, str) and value else None


class Assertion(BaseModel):
    id: str = Field(default_factory=lambda: f'assert-{uuid.uuid4().hex[:8]}')
    description: str
    check: str


class Step(BaseModel):
    id: str
    description: str
    action: Action
    assertion: Optional[Assertion] = None

    def target_description(self) -> str:
        """What discovery should look for: the description argument, the selector, or the step text."""
        args = self.action.arguments
        for key in ('description', 'selector'):
            value = args.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return self.description


class RefinedStep(Step):
    element_discovery: Optional[ElementDiscoveryResult] = None
    original_selector: Optional[str] = None
    retry_count: int = 0


_REFINED_KEYS = frozenset({'element_discovery', 'original_selector', 'retry_count'})


class PlanRefinement(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_id: str
    original_selector: Optional[str] = None
    refined_selector: Optional[str] = None
    reason: str
    timestamp: datetime = Field(default_factory=utc_now)
    confidence: Optional[float] = None


class Plan(BaseModel):
    id: str
    scenario_id: str
    scenario: Optional[str] = None
    name: Optional[str] = None
    steps: list[SerializeAsAny[Step]] = Field(default_factory=list)
    phase: PlanPhase = 'initial'
    refinement_history: list[PlanRefinement] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    refinement_timestamp: Optional[datetime] = None

    @field_validator('steps', mode='before')
    @classmethod
    def _keep_refined_steps(cls, v):
        if not isinstance(v, list):
            return v
        return [RefinedStep.model_validate(s) if isinstance(s, dict) and _REFINED_KEYS & s.keys() else s for s in v]

    def step(self, step_id: str) -> Optional[Step]:
        return next((s for s in self.steps if s.id == step_id), None)

    def advanced_to(self, phase: PlanPhase) -> PlanPhase:
        """``phase`` if it is later than the current one, otherwise the current phase."""
        return phase if _PHASE_ORDER[phase] > _PHASE_ORDER[self.phase] else self.phase

    def evolve(
        self,
        *,
        phase: Optional[PlanPhase] = None,
        steps: Optional[list[Step]] = None,
        refinements: Optional[list[PlanRefinement]] = None,
        max_history: int = 20,
    ) -> 'Plan':
        """Copy with new steps/records appended; the phase never moves backwards."""
        update: dict[str, Any] = {}
        if phase is not None:
            update['phase'] = self.advanced_to(phase)
        if steps is not None:
            update['steps'] = list(steps)
        if refinements:
            history = [*self.refinement_history, *refinements]
            update['refinement_history'] = history[-max_history:]
            update['refinement_timestamp'] = utc_now()
        return self.model_copy(update=update)
