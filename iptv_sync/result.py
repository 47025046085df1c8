"""Success-or-failure values returned across the sync and client boundaries."""
import enum
from dataclasses import dataclass
from typing import Any, Optional


class ErrorKind(enum.Enum):
    NETWORK = 'network'
    HTTP = 'http'
    AUTH = 'auth'
    DECODE = 'decode'
    NOT_FOUND = 'not_found'
    BUSY = 'busy'
    STORAGE = 'storage'


@dataclass(frozen=True)
class Result:
    value: Any = None
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value=None):
        return cls(value=value)

    @classmethod
    def fail(cls, kind, message):
        return cls(kind=kind, message=message)

    @property
    def is_ok(self):
        return self.kind is None

    def value_or(self, default):
        """The value on success, `default` on failure."""
        return self.value if self.is_ok else default
