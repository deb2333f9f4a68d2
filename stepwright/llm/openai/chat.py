import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import openai
from openai import AsyncOpenAI

from stepwright.concurrency.io import io_semaphore
from stepwright.config import CONFIG
from stepwright.exceptions import LLMException, RateLimitError, TransientError
from stepwright.llm.messages import BaseMessage
from stepwright.llm.openai.serializer import OpenAIMessageSerializer

logger = logging.getLogger(__name__)


@dataclass
class ChatOpenAI:
	"""OpenAI chat completions behind the BaseChatModel protocol.

	Provider errors are mapped onto the stepwright taxonomy: rate limits,
	timeouts, connection failures and 5xx responses become transient; any
	other API error is an LLMException.
	"""

	model: str = field(default_factory=lambda: CONFIG.OPENAI_MODEL)
	api_key: Optional[str] = None
	base_url: Optional[str] = None
	timeout: float = 60.0
	max_tokens: Optional[int] = 4096
	client: Optional[AsyncOpenAI] = None

	def get_client(self) -> AsyncOpenAI:
		if self.client is None:
			self.client = AsyncOpenAI(
				api_key=self.api_key or CONFIG.OPENAI_API_KEY,
				base_url=self.base_url or CONFIG.OPENAI_BASE_URL,
				timeout=self.timeout,
				# Retries are owned by RetryStrategy
				max_retries=0,
			)
		return self.client

	async def complete(
		self,
		messages: Sequence[BaseMessage],
		model: Optional[str] = None,
		temperature: float = 0.0,
		json_mode: bool = False,
	) -> str:
		params: dict[str, Any] = {
			'model': model or self.model,
			'messages': OpenAIMessageSerializer.serialize_messages(list(messages)),
			'temperature': temperature,
		}
		if self.max_tokens is not None:
			params['max_tokens'] = self.max_tokens
		if json_mode:
			params['response_format'] = {'type': 'json_object'}

		try:
			async with io_semaphore():
				response = await self.get_client().chat.completions.create(**params)
		except openai.RateLimitError as e:
			raise RateLimitError(e.status_code, e.message) from e
		except (openai.APITimeoutError, openai.APIConnectionError) as e:
			raise TransientError(f'OpenAI connection error: {e}') from e
		except openai.APIStatusError as e:
			if e.status_code >= 500:
				raise TransientError(f'OpenAI {e.status_code}: {e.message}') from e
			raise LLMException(e.status_code, e.message) from e

		content = response.choices[0].message.content if response.choices else None
		if not content:
			raise LLMException(None, 'Empty completion from OpenAI')
		if response.usage is not None:
			logger.debug(f'{params["model"]} used {response.usage.total_tokens} tokens')
		return content
