from typing import TYPE_CHECKING

from stepwright.llm.base import BaseChatModel
from stepwright.llm.messages import (
	AssistantMessage,
	BaseMessage,
	ContentPartImageParam,
	ContentPartTextParam,
	SystemMessage,
	UserMessage,
)

if TYPE_CHECKING:
	from stepwright.llm.openai.chat import ChatOpenAI

_LAZY_IMPORTS = {
	'ChatOpenAI': ('stepwright.llm.openai.chat', 'ChatOpenAI'),
}


def __getattr__(name: str):
	if name in _LAZY_IMPORTS:
		module_path, attr_name = _LAZY_IMPORTS[name]
		from importlib import import_module

		attr = getattr(import_module(module_path), attr_name)
		globals()[name] = attr
		return attr
	raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
	'AssistantMessage',
	'BaseChatModel',
	'BaseMessage',
	'ChatOpenAI',
	'ContentPartImageParam',
	'ContentPartTextParam',
	'SystemMessage',
	'UserMessage',
]
