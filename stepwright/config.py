"""Environment-backed configuration.

Values are read lazily on every access so tests can patch ``os.environ``
without reloading the module. ``.env`` files are honored via python-dotenv.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or raw == '':
		return default
	return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class _Config:
	@property
	def STEPWRIGHT_LOGGING_LEVEL(self) -> str:
		return os.getenv('STEPWRIGHT_LOGGING_LEVEL', os.getenv('LOG_LEVEL', 'info')).lower()

	@property
	def STEPWRIGHT_SETUP_LOGGING(self) -> bool:
		return _env_bool('STEPWRIGHT_SETUP_LOGGING', True)

	@property
	def OPENAI_API_KEY(self) -> str | None:
		return os.getenv('OPENAI_API_KEY') or None

	@property
	def OPENAI_BASE_URL(self) -> str | None:
		return os.getenv('OPENAI_BASE_URL') or None

	@property
	def OPENAI_MODEL(self) -> str:
		return os.getenv('OPENAI_MODEL', 'gpt-4o')

	@property
	def OPENAI_VISION_MODEL(self) -> str:
		return os.getenv('OPENAI_VISION_MODEL', self.OPENAI_MODEL)

	@property
	def STEPWRIGHT_HEADLESS(self) -> bool:
		return _env_bool('STEPWRIGHT_HEADLESS', _env_bool('HEADLESS', True))

	@property
	def STEPWRIGHT_LLM_CONCURRENCY(self) -> int:
		try:
			return max(1, int(os.getenv('STEPWRIGHT_LLM_CONCURRENCY', '4')))
		except ValueError:
			return 4


CONFIG = _Config()
