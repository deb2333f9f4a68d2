import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from stepwright.exceptions import ValidationError

M = TypeVar('M', bound=BaseModel)

_FENCE = re.compile(r'^```(?:json)?\s*(.*?)\s*```$', re.DOTALL)


def extract_json_object(text: str) -> dict[str, Any]:
	"""Decode a completion that should be a single JSON object.

	Tolerates a surrounding markdown fence and leading/trailing prose around
	the outermost braces; anything else raises ValidationError.
	"""
	raw = text.strip()
	fenced = _FENCE.match(raw)
	if fenced:
		raw = fenced.group(1)
	try:
		data = json.loads(raw)
	except json.JSONDecodeError:
		start, end = raw.find('{'), raw.rfind('}')
		if start == -1 or end <= start:
			raise ValidationError(f'Completion is not JSON: {text[:200]!r}')
		try:
			data = json.loads(raw[start : end + 1])
		except json.JSONDecodeError as e:
			raise ValidationError(f'Completion is not valid JSON: {e}') from e
	if not isinstance(data, dict):
		raise ValidationError(f'Expected a JSON object, got {type(data).__name__}')
	return data


def parse_payload(text: str, model: type[M]) -> M:
	data = extract_json_object(text)
	try:
		return model.model_validate(data)
	except PydanticValidationError as e:
		raise ValidationError(f'{model.__name__} payload rejected: {e.error_count()} error(s): {e.errors()[0]["msg"]}') from e
