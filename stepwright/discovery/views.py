from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stepwright.dom.views import ElementDescriptor

ActionKind = Literal['click', 'type', 'hover', 'verify']
INTERACTION_KINDS: tuple[str, ...] = ('click', 'type', 'hover')


class ElementInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    attributes: dict[str, str] = Field(default_factory=dict)
    text: Optional[str] = None
    position: Optional[dict[str, float]] = None

    @classmethod
    def from_descriptor(cls, el: ElementDescriptor) -> 'ElementInfo':
        position = None
        if el.bbox is not None:
            position = {'x': el.bbox.x, 'y': el.bbox.y, 'width': el.bbox.width, 'height': el.bbox.height}
        return cls(tag=el.tag, attributes=el.attributes(), text=el.text or None, position=position)


class ElementDiscoveryResult(BaseModel):
    """What a discovery strategy proposes for one description.

    Either ``selector`` is set (structural) or ``method`` is 'vision' and
    resolution is left to the executor's perceptual path.
    """

    model_config = ConfigDict(frozen=True)

    selector: Optional[str] = None
    method: Literal['dom', 'vision'] = 'dom'
    confidence: float = Field(ge=0.0, le=1.0)
    alternatives: tuple[str, ...] = ()
    element_info: Optional[ElementInfo] = None
    strategy: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='after')
    def _selector_or_vision(self) -> 'ElementDiscoveryResult':
        if self.method == 'dom' and not self.selector:
            raise ValueError('A dom discovery result needs a selector')
        return self


class LocateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: Literal['dom', 'vision']
    selector: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    element_info: Optional[ElementInfo] = None
    strategy: str
    alternatives: tuple[str, ...] = ()

    @property
    def is_dom(self) -> bool:
        return self.method == 'dom' and bool(self.selector)


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))
