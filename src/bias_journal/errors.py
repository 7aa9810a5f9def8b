"""Journal exceptions and backend error classification.

Every backend error is classified here, by code and message pattern, into a
``BackendFailure``. The same missing object can surface with different codes
depending on whether it is a function, a view or a table, so callers must
never branch on exception types of the driver directly.
"""

from __future__ import annotations

import enum
import re

from pydantic import BaseModel
from sqlalchemy import exc as sa_exc


class FailureKind(str, enum.Enum):
    MISSING = "missing"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


class MissingObject(str, enum.Enum):
    FUNCTION = "function"
    RELATION = "relation"


class BackendFailure(BaseModel):
    kind: FailureKind
    missing: MissingObject | None = None
    code: str | None = None
    message: str = ""

    @property
    def is_missing_function(self) -> bool:
        return self.kind == FailureKind.MISSING and self.missing == MissingObject.FUNCTION

    @property
    def is_missing_relation(self) -> bool:
        return self.kind == FailureKind.MISSING and self.missing == MissingObject.RELATION


# SQLSTATE (Postgres) and PostgREST codes.
_MISSING_FUNCTION_CODES = {"42883", "PGRST202"}
_MISSING_RELATION_CODES = {"42P01", "PGRST205", "PGRST200"}
# 08xxx connection, 28xxx auth, 57P0x shutdown, 53xxx resources, 40001 serialization
_TRANSIENT_CODE_PREFIXES = ("08", "28", "57P", "53", "40001", "42501")

_MISSING_FUNCTION_PATTERNS = (
    re.compile(r"function .+ does not exist", re.IGNORECASE),
    re.compile(r"could not find the function", re.IGNORECASE),
)
_MISSING_RELATION_PATTERNS = (
    re.compile(r"relation .+ does not exist", re.IGNORECASE),
    re.compile(r"could not find the (table|relation)", re.IGNORECASE),
)

_TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    sa_exc.DisconnectionError,
    ConnectionError,
    TimeoutError,
)


def _error_code(error: BaseException) -> str | None:
    code = getattr(error, "sqlstate", None) or getattr(error, "pgcode", None)
    if code:
        return str(code)
    orig = getattr(error, "orig", None)
    if orig is not None and orig is not error:
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if code:
            return str(code)
    code = getattr(error, "code", None)
    # SQLAlchemy sets .code to its own short doc codes (e.g. "f405"); ignore those.
    if isinstance(code, str) and (code.startswith("PGRST") or len(code) == 5):
        return code
    return None


def classify_backend_error(error: BaseException) -> BackendFailure:
    """Classify a backend exception into MISSING / TRANSIENT / UNKNOWN."""
    if isinstance(error, BackendError):
        return error.failure

    code = _error_code(error)
    message = str(error)

    if code in _MISSING_FUNCTION_CODES or any(p.search(message) for p in _MISSING_FUNCTION_PATTERNS):
        return BackendFailure(
            kind=FailureKind.MISSING, missing=MissingObject.FUNCTION, code=code, message=message
        )
    if code in _MISSING_RELATION_CODES or any(p.search(message) for p in _MISSING_RELATION_PATTERNS):
        return BackendFailure(
            kind=FailureKind.MISSING, missing=MissingObject.RELATION, code=code, message=message
        )
    if isinstance(error, _TRANSIENT_EXCEPTIONS) or (
        code is not None and code.startswith(_TRANSIENT_CODE_PREFIXES)
    ):
        return BackendFailure(kind=FailureKind.TRANSIENT, code=code, message=message)
    return BackendFailure(kind=FailureKind.UNKNOWN, code=code, message=message)


def is_transient(error: BaseException) -> bool:
    return classify_backend_error(error).kind == FailureKind.TRANSIENT


class JournalError(Exception):
    """Base class for all journal errors."""


class BackendError(JournalError):
    """A backend call failed with a non-recoverable error."""

    def __init__(self, failure: BackendFailure, operation: str = "") -> None:
        self.failure = failure
        self.operation = operation
        super().__init__(f"{operation or 'backend'} failed ({failure.kind.value}): {failure.message}")


class BiasActivationError(JournalError):
    """The previous bias was deactivated but the new one could not be stored.

    The day is left without an active bias.
    """


class ExecutionContextError(JournalError):
    """An execution model was chosen that does not fit the active bias."""


class TradeValidationError(JournalError):
    def __init__(self, failures: list) -> None:
        self.failures = failures
        rules = ", ".join(f.rule for f in failures)
        super().__init__(f"Trade rejected: {rules}")


class TradeNotFoundError(JournalError):
    pass


class TradeStateError(JournalError):
    pass
