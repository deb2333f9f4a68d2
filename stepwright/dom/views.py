from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Framework utility classes that say nothing about which element this is.
_GENERIC_CLASS_PREFIXES = ('slds-', 'css-', 'ng-', 'sc-')


class BoundingBox(BaseModel):
	x: float
	y: float
	width: float
	height: float

	@property
	def center(self) -> tuple[float, float]:
		return (self.x + self.width / 2, self.y + self.height / 2)

	def distance_to(self, other: 'BoundingBox') -> float:
		(ax, ay), (bx, by) = self.center, other.center
		return ((ax - bx) ** 2 + (ay - by) ** 2) ** 0.5


class ElementDescriptor(BaseModel):
	"""Flat snapshot of one live element, as returned by the browser driver."""

	model_config = ConfigDict(extra='ignore')

	tag: str
	id: str = ''
	class_name: str = ''
	name: str = ''
	type: str = ''
	role: str = ''
	title: str = ''
	aria_label: str = ''
	placeholder: str = ''
	test_id: str = ''
	href: str = ''
	value: str = ''
	text: str = ''
	visible: bool = True
	bbox: Optional[BoundingBox] = None

	@property
	def classes(self) -> list[str]:
		return [c for c in self.class_name.split() if c]

	@property
	def is_text_input(self) -> bool:
		if self.tag == 'textarea':
			return True
		return self.tag == 'input' and self.type.lower() not in ('hidden', 'submit', 'button', 'checkbox', 'radio', 'image', 'reset')

	def build_selector(self) -> str:
		"""Most stable selector for this element: test id, id, input name, title, aria-label, class, tag."""
		if self.test_id:
			return f'[data-testid="{css_string(self.test_id)}"]'
		if self.id:
			return f'#{css_escape_identifier(self.id)}'
		if self.tag == 'input' and self.name:
			return f'input[name="{css_string(self.name)}"]'
		if self.title:
			return f'{self.tag}[title="{css_string(self.title)}"]'
		if self.aria_label:
			return f'[aria-label="{css_string(self.aria_label)}"]'
		classes = self.classes
		for cls in classes:
			if len(cls) > 3 and not cls.startswith(_GENERIC_CLASS_PREFIXES):
				return f'.{css_escape_identifier(cls)}'
		if classes:
			return f'.{css_escape_identifier(classes[0])}'
		return self.tag

	def attributes(self) -> dict[str, str]:
		pairs = {
			'id': self.id,
			'class': self.class_name,
			'name': self.name,
			'type': self.type,
			'role': self.role,
			'title': self.title,
			'aria-label': self.aria_label,
			'placeholder': self.placeholder,
			'data-testid': self.test_id,
			'href': self.href,
		}
		return {k: v for k, v in pairs.items() if v}


class StructureEntry(BaseModel):
	"""One row of the page-structure summary handed to the LLM."""

	tag: str
	id: Optional[str] = None
	classes: list[str] = Field(default_factory=list)
	text: Optional[str] = None
	attributes: dict[str, str] = Field(default_factory=dict)
	selector: str


def css_string(value: str) -> str:
	"""Escape a value for use inside a double-quoted selector string."""
	return value.replace('\\', '\\\\').replace('"', '\\"')


def css_escape_identifier(value: str) -> str:
	out = []
	for i, ch in enumerate(value):
		if ch.isalnum() or ch in '-_' or ord(ch) > 127:
			if i == 0 and ch.isdigit():
				out.append(f'\\3{ch} ')
			else:
				out.append(ch)
		else:
			out.append('\\' + ch)
	return ''.join(out)
