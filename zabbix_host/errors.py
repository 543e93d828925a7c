from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    CHANGES_PENDING = 2
    INPUT_ERROR = 3
    INVALID_VALUE_ERROR = 4
    VALIDATION_ERROR = 5


class HostSpecError(Exception):
    """Base host spec exception with a stable exit-code mapping."""

    exit_code: ExitCode = ExitCode.VALIDATION_ERROR


class ValidationError(HostSpecError):
    exit_code = ExitCode.VALIDATION_ERROR


class InvalidValueError(HostSpecError):
    exit_code = ExitCode.INVALID_VALUE_ERROR


class InputError(HostSpecError):
    exit_code = ExitCode.INPUT_ERROR


def map_exception_to_exit_code(exc: Exception) -> int:
    if isinstance(exc, HostSpecError):
        return int(exc.exit_code)
    return int(ExitCode.INPUT_ERROR)
