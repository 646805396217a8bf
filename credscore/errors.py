"""
Credscore — Errors

    ConfigurationError   a signal definition has no registered evaluator, or the
                         score configuration is malformed. Raised before any I/O.
    EvaluationError      one evaluator failed at runtime. Captured into
                         ScoreResult.errors; never crosses the engine boundary.
    SignalTimeoutError   an evaluator was still pending at the request deadline.

"No data" is not an error: evaluators return a neutral or sentinel value instead.
"""
from typing import Optional


class CredscoreError(Exception):
    pass


class ConfigurationError(CredscoreError):
    pass


class EvaluationError(CredscoreError):
    def __init__(self, signal: str, cause: Optional[BaseException] = None, message: str = ""):
        self.signal = signal
        self.cause = cause
        detail = message or (f"{type(cause).__name__}: {cause}" if cause is not None else "failed")
        super().__init__(f"Signal '{signal}' failed: {detail}")


class SignalTimeoutError(EvaluationError):
    def __init__(self, signal: str, deadline: float):
        self.deadline = deadline
        super().__init__(signal, message=f"still pending after {deadline}s deadline")


class ChainIndexerError(CredscoreError):
    pass


class MalformedDataError(CredscoreError):
    pass


class TargetParseError(CredscoreError, ValueError):
    pass


class NotFoundError(CredscoreError):
    pass
