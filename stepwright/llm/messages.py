import base64
from typing import Literal, Union

from pydantic import BaseModel


class ContentPartTextParam(BaseModel):
	type: Literal['text'] = 'text'
	text: str


class ImageURL(BaseModel):
	url: str
	detail: Literal['auto', 'low', 'high'] = 'auto'


class ContentPartImageParam(BaseModel):
	type: Literal['image_url'] = 'image_url'
	image_url: ImageURL

	@classmethod
	def from_jpeg(cls, data: bytes, detail: Literal['auto', 'low', 'high'] = 'high') -> 'ContentPartImageParam':
		encoded = base64.b64encode(data).decode('ascii')
		return cls(image_url=ImageURL(url=f'data:image/jpeg;base64,{encoded}', detail=detail))


ContentPart = Union[ContentPartTextParam, ContentPartImageParam]


class _MessageBase(BaseModel):
	content: Union[str, list[ContentPart]]

	@property
	def text(self) -> str:
		if isinstance(self.content, str):
			return self.content
		return '\n'.join(p.text for p in self.content if isinstance(p, ContentPartTextParam))


class SystemMessage(_MessageBase):
	role: Literal['system'] = 'system'


class UserMessage(_MessageBase):
	role: Literal['user'] = 'user'


class AssistantMessage(_MessageBase):
	role: Literal['assistant'] = 'assistant'


BaseMessage = Union[SystemMessage, UserMessage, AssistantMessage]
