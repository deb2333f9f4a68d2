from typing import Any

from stepwright.llm.messages import (
	AssistantMessage,
	BaseMessage,
	ContentPartImageParam,
	ContentPartTextParam,
	SystemMessage,
	UserMessage,
)


class OpenAIMessageSerializer:
	"""Serializer for converting messages to the OpenAI chat completions format."""

	@staticmethod
	def serialize_messages(messages: list[BaseMessage | str | dict]) -> list[dict[str, Any]]:
		"""
		Convert messages to OpenAI ``messages`` entries.

		Plain strings become user messages and ``{role, content}`` dicts are
		normalized first. Image parts are passed through as ``image_url``
		parts; only user messages may carry them, so images on any other
		role are dropped.
		"""
		normalized: list[BaseMessage] = []
		for m in messages:
			if isinstance(m, str):
				normalized.append(UserMessage(content=m))
				continue
			if isinstance(m, dict):
				role = m.get('role')
				content = m.get('content')
				content = '' if content is None else content
				if role in ('system', 'developer'):
					normalized.append(SystemMessage(content=content))
				elif role == 'assistant':
					normalized.append(AssistantMessage(content=content))
				else:
					normalized.append(UserMessage(content=content))
				continue
			normalized.append(m)

		formatted: list[dict[str, Any]] = []
		for message in normalized:
			if isinstance(message.content, str):
				formatted.append({'role': message.role, 'content': message.content})
				continue

			if not isinstance(message, UserMessage):
				formatted.append({'role': message.role, 'content': message.text})
				continue

			parts: list[dict[str, Any]] = []
			for part in message.content:
				if isinstance(part, ContentPartTextParam):
					parts.append({'type': 'text', 'text': part.text})
				elif isinstance(part, ContentPartImageParam):
					parts.append({'type': 'image_url', 'image_url': {'url': part.image_url.url, 'detail': part.image_url.detail}})
			if parts:
				formatted.append({'role': 'user', 'content': parts})

		return formatted
