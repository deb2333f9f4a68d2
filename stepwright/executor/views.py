from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from stepwright.timing import utc_now

ExecutionStatus = Literal['success', 'failure', 'error']


class Snapshot(BaseModel):
    """Diagnostic capture taken after every executed action."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    url: str = ''
    html_length: int = 0
    screenshot_base64: Optional[str] = None


class ExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_id: str = 'unknown'
    description: Optional[str] = None
    selector: Optional[str] = Field(None, description="Selector the action finally acted on, if any.")
    status: ExecutionStatus
    error: Optional[str] = None
    snapshot: Snapshot = Field(default_factory=Snapshot)
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'
