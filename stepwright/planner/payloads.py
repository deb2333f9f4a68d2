"""Validated shapes of the planner's LLM responses.

Anything that does not match is rejected as a whole; the callers fall back
to the plan they already have.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stepwright.planner.views import Action, Assertion, Step


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class ActionPayload(_Payload):
    name: str = Field(min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator('arguments', mode='before')
    @classmethod
    def _none_is_empty(cls, v):
        return {} if v is None else v


class AssertionPayload(_Payload):
    id: Optional[str] = None
    description: str
    check: str = ''


class StepPayload(_Payload):
    id: str = Field(min_length=1)
    description: str = Field(min_length=1)
    action: ActionPayload
    assertion: Optional[AssertionPayload] = None

    @field_validator('id', mode='before')
    @classmethod
    def _id_as_text(cls, v):
        return str(v) if isinstance(v, int) else v

    def to_step(self) -> Step:
        assertion = None
        if self.assertion is not None:
            fields = {'description': self.assertion.description, 'check': self.assertion.check or self.assertion.description}
            if self.assertion.id:
                fields['id'] = self.assertion.id
            assertion = Assertion(**fields)
        return Step(
            id=self.id,
            description=self.description,
            action=Action(name=self.action.name, arguments=dict(self.action.arguments)),
            assertion=assertion,
        )


class PlanPayload(_Payload):
    steps: list[StepPayload] = Field(min_length=1)


class RemovedStep(_Payload):
    step_id: str = Field(alias='stepId')
    reason: str = 'No reason given'


class RefinementRecord(_Payload):
    step_id: str = Field(alias='stepId')
    original_selector: Optional[str] = Field(None, alias='originalSelector')
    refined_selector: Optional[str] = Field(None, alias='refinedSelector')
    reason: str = 'Refined against page structure'
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    alternatives: list[str] = Field(default_factory=list)


class RefinementPayload(_Payload):
    steps: Optional[list[StepPayload]] = None
    removed_steps: list[RemovedStep] = Field(default_factory=list, alias='removedSteps')
    refinements: list[RefinementRecord] = Field(default_factory=list)
    error: Optional[str] = None

    @field_validator('removed_steps', 'refinements', mode='before')
    @classmethod
    def _none_is_empty(cls, v):
        return [] if v is None else v
