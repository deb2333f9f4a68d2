from typing import Optional, Protocol, Sequence, runtime_checkable

from stepwright.llm.messages import BaseMessage


@runtime_checkable
class BaseChatModel(Protocol):
	"""Completion service used by the planner and the discovery strategies."""

	model: str

	async def complete(
		self,
		messages: Sequence[BaseMessage],
		model: Optional[str] = None,
		temperature: float = 0.0,
		json_mode: bool = False,
	) -> str: ...
