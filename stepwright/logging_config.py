import locale
import logging
import sys

from stepwright.config import CONFIG
from stepwright.timing import now_utc_iso, process_start_utc_iso, uptime_seconds

_THIRD_PARTY_LOGGERS = (
	'httpx',
	'httpcore',
	'openai',
	'openai._base_client',
	'playwright',
	'asyncio',
	'urllib3',
	'charset_normalizer',
)


def add_logging_level(level_name: str, level_num: int, method_name: str | None = None) -> None:
	"""Register a custom level on the `logging` module and the logger class.

	`level_name` becomes an attribute of `logging` with the value `level_num`,
	and `method_name` (default: `level_name.lower()`) becomes a convenience
	method on both `logging` and the active logger class.

	Raises `AttributeError` if either name is already taken.

	>>> add_logging_level('TRACE', logging.DEBUG - 5)
	>>> logging.getLogger(__name__).trace('that worked')
	"""
	method_name = method_name or level_name.lower()

	if hasattr(logging, level_name):
		raise AttributeError(f'{level_name} already defined in logging module')
	if hasattr(logging, method_name):
		raise AttributeError(f'{method_name} already defined in logging module')
	if hasattr(logging.getLoggerClass(), method_name):
		raise AttributeError(f'{method_name} already defined in logger class')

	def log_for_level(self, message, *args, **kwargs):
		if self.isEnabledFor(level_num):
			self._log(level_num, message, args, **kwargs)

	def log_to_root(message, *args, **kwargs):
		logging.log(level_num, message, *args, **kwargs)

	logging.addLevelName(level_num, level_name)
	setattr(logging, level_name, level_num)
	setattr(logging.getLoggerClass(), method_name, log_for_level)
	setattr(logging, method_name, log_to_root)


class SafeStreamHandler(logging.StreamHandler):
	"""Stream handler that never raises on consoles that cannot encode a message.

	Characters the stream encoding rejects are replaced instead of crashing
	the test run.
	"""

	def emit(self, record):  # type: ignore[override]
		try:
			msg = self.format(record)
			stream = self.stream
			try:
				stream.write(msg + self.terminator)
			except UnicodeEncodeError:
				enc = getattr(stream, 'encoding', None) or locale.getpreferredencoding(False) or 'utf-8'
				stream.write(msg.encode(enc, errors='replace').decode(enc, errors='replace') + self.terminator)
			self.flush()
		except Exception:
			self.handleError(record)


class StepwrightFormatter(logging.Formatter):
	def format(self, record):
		try:
			record.utc = now_utc_iso()
			record.uptime = f'{uptime_seconds():.3f}s'
		except Exception:
			record.utc = ''
			record.uptime = ''
		return super().format(record)


def setup_logging(stream=None, log_level=None, force_setup=False):
	"""Configure logging for stepwright.

	Args:
		stream: Output stream for logs (default: sys.stdout).
		log_level: 'result' | 'debug' | 'info'. Defaults to CONFIG.STEPWRIGHT_LOGGING_LEVEL.
		force_setup: Reconfigure even if the root logger already has handlers.
	"""
	try:
		add_logging_level('RESULT', 35)
	except AttributeError:
		pass

	log_type = log_level or CONFIG.STEPWRIGHT_LOGGING_LEVEL

	if logging.getLogger().hasHandlers() and not force_setup:
		return logging.getLogger('stepwright')

	root = logging.getLogger()
	root.handlers = []

	console = SafeStreamHandler(stream or sys.stdout)
	if log_type == 'result':
		console.setLevel('RESULT')
		console.setFormatter(StepwrightFormatter('%(message)s'))
	else:
		console.setFormatter(StepwrightFormatter('%(levelname)-8s [%(name)s] %(utc)s (+%(uptime)s) %(message)s'))

	root.addHandler(console)

	if log_type == 'result':
		root.setLevel('RESULT')
	elif log_type == 'debug':
		root.setLevel(logging.DEBUG)
	else:
		root.setLevel(logging.INFO)

	logger = logging.getLogger('stepwright')
	logger.propagate = False
	logger.handlers = [console]
	logger.setLevel(root.level)
	logger.debug(f'Logging initialized at {now_utc_iso()} (process_start={process_start_utc_iso()})')

	for logger_name in _THIRD_PARTY_LOGGERS:
		third_party = logging.getLogger(logger_name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	return logger
