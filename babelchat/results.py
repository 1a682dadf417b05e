"""
Result type returned by every public service operation.

A ``Result`` carries either a value or a ``ChatError``. Read paths may carry
both: the last good in-memory value together with the storage error that
prevented a fresh read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from babelchat.errors import ChatError

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a service call.

    Attributes:
        value: Payload of the call (may be a stale value when ``error`` is set
            on a read path)
        error: The failure, if any
    """
    value: Optional[T] = None
    error: Optional[ChatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Optional[T] = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ChatError, value: Optional[T] = None) -> Result[T]:
        return cls(value=value, error=error)
