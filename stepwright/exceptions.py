class StepwrightError(Exception):
	"""Base class for all errors raised by stepwright."""


class TransientError(StepwrightError):
	"""Network, timeout or rate-limit failure. Always retried."""


class FatalError(StepwrightError):
	"""Explicitly non-retryable failure. Ends a retry loop immediately."""


class CircuitOpenError(FatalError):
	def __init__(self, key: str, retry_in_seconds: int):
		self.key = key
		self.retry_in_seconds = retry_in_seconds
		super().__init__(f'Circuit breaker is OPEN for "{key}". Wait {retry_in_seconds}s before retry.')


class ElementNotFoundError(StepwrightError):
	def __init__(self, message: str, method: str | None = None, selector: str | None = None, confidence: float | None = None):
		self.method = method
		self.selector = selector
		self.confidence = confidence
		super().__init__(message)


class AmbiguousSelectorError(StepwrightError):
	def __init__(self, selector: str, count: int):
		self.selector = selector
		self.count = count
		super().__init__(f'Selector "{selector}" is ambiguous: matched {count} elements')


class ValidationError(StepwrightError):
	"""Malformed LLM payload or plan missing required fields.

	Distinct from pydantic's ``ValidationError``; the pydantic error is kept
	as ``__cause__`` when one triggered it.
	"""


class RecursionLimitError(StepwrightError):
	def __init__(self, depth: int):
		self.depth = depth
		super().__init__(f'Element discovery failed after {depth} retry cycles')


class LLMException(StepwrightError):
	def __init__(self, status_code: int | None, message: str):
		self.status_code = status_code
		self.message = message
		super().__init__(f'Error {status_code}: {message}' if status_code else message)


class RateLimitError(LLMException, TransientError):
	pass
