from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any

from .errors import InvalidValueError


class TlsMode(IntEnum):
    UNENCRYPTED = 1
    PSK = 2
    CERT = 4


class BoolToken(str, Enum):
    TRUE = "true"
    FALSE = "false"


_ENCRYPTION_NAMES = {mode.name.lower(): int(mode) for mode in TlsMode}


def normalize_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    token = _token(value)
    if token == "true":
        return True
    if token == "false":
        return False
    raise InvalidValueError("munge_boolean only takes booleans")


def normalize_encryption_mode(value: Any) -> int:
    if isinstance(value, TlsMode):
        return int(value)
    token = _token(value)
    # bool is an int subclass, True must not pass as unencrypted
    if isinstance(token, int) and not isinstance(token, bool):
        if token in _ENCRYPTION_NAMES.values():
            return int(token)
    elif isinstance(token, str) and token in _ENCRYPTION_NAMES:
        return _ENCRYPTION_NAMES[token]
    raise InvalidValueError("munge_encryption only takes unencrypted, psk or cert")


def _token(value: Any) -> Any:
    """Unwrap symbol-like tokens (enum members) to their plain value."""
    if isinstance(value, Enum) and not isinstance(value, int):
        return value.value
    return value
