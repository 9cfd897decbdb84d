# Result envelope returned by every caller-facing operation.
#
# Nothing raises past the service boundary: failures are converted to
# Result(success=False, kind=...) with a human-readable message.

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .exceptions import KeywardError

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """Uniform {success, message, data?} envelope."""

    success: bool
    message: str
    data: Optional[Any] = None
    kind: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, data: Any = None, warnings: Optional[List[str]] = None) -> "Result":
        return cls(success=True, message=message, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(cls, message: str, kind: str = "internal", data: Any = None) -> "Result":
        return cls(success=False, message=message, data=data, kind=kind)

    @classmethod
    def from_error(cls, error: KeywardError, data: Any = None) -> "Result":
        return cls.fail(error.message, kind=error.kind, data=data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        if self.kind is not None:
            out["kind"] = self.kind
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out


def returns_result(operation: str) -> Callable:
    """Convert a coroutine's KeywardError (or unexpected error) into a failed Result.

    The wrapped coroutine returns a Result on success and raises on failure.
    """

    def decorator(fn: Callable[..., Awaitable[Result]]) -> Callable[..., Awaitable[Result]]:
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs) -> Result:
            try:
                return await fn(*args, **kwargs)
            except KeywardError as exc:
                return Result.from_error(exc)
            except Exception:
                logger.exception("Unexpected error while trying to %s", operation)
                return Result.fail(f"Internal error while trying to {operation}")

        return wrapper

    return decorator
