from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stepwright.discovery.views import ElementInfo


class ElementPayload(BaseModel):
    """Completion returned by the element-discovery prompts."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    selector: Optional[str] = None
    confidence: Optional[float] = None
    alternatives: list[str] = Field(default_factory=list)
    element_info: Optional[dict[str, Any]] = Field(None, alias='elementInfo')
    error: Optional[str] = None

    @field_validator('alternatives', mode='before')
    @classmethod
    def _drop_empty(cls, v):
        if v is None:
            return []
        return [s for s in v if isinstance(s, str) and s.strip()]

    @field_validator('confidence', mode='before')
    @classmethod
    def _clamp(cls, v):
        if v is None:
            return None
        return max(0.0, min(1.0, float(v)))

    def info(self) -> ElementInfo:
        raw = self.element_info or {}
        attributes = raw.get('attributes') if isinstance(raw.get('attributes'), dict) else {}
        return ElementInfo(
            tag=str(raw.get('tag') or 'unknown'),
            attributes={str(k): str(v) for k, v in attributes.items()},
            text=raw.get('text') if isinstance(raw.get('text'), str) else None,
        )


class VisibilityPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    visible: bool
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ''
