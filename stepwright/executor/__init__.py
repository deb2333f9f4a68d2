from stepwright.executor.unified import UnifiedActionExecutor
from stepwright.executor.verification import VerificationRequest, check_value, parse_verification
from stepwright.executor.views import ExecutionResult, Snapshot

__all__ = [
    'ExecutionResult',
    'Snapshot',
    'UnifiedActionExecutor',
    'VerificationRequest',
    'check_value',
    'parse_verification',
]
