import importlib.resources
from functools import lru_cache


@lru_cache(maxsize=None)
def load_prompt_template(filename: str) -> str:
	"""Read a markdown template shipped in this package."""
	try:
		with importlib.resources.files('stepwright.prompts').joinpath(filename).open('r', encoding='utf-8') as f:
			return f.read()
	except Exception as e:
		raise RuntimeError(f'Failed to load prompt template {filename}: {e}') from e


def render_prompt(filename: str, **values) -> str:
	"""Fill a template; literal braces in templates are written doubled."""
	return load_prompt_template(filename).format(**values)


__all__ = ['load_prompt_template', 'render_prompt']
