from __future__ import annotations

import argparse
import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .changeset import build_changeset_payload
from .errors import (
    ExitCode,
    InputError,
    InvalidValueError,
    ValidationError,
    map_exception_to_exit_code,
)
from .log import log
from .models import DEFAULT_API_CONFIG, HostSpec
from .reconcile import compare


class HostArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise InputError(message)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = HostArgumentParser(
        description="Compare a desired zabbix host declaration with its observed state"
    )
    parser.add_argument("--desired-json", required=True, help="Desired host state as JSON")
    parser.add_argument(
        "--observed-json",
        default=None,
        help="Observed host state as JSON, omit when the host does not exist",
    )
    parser.add_argument(
        "--api-config",
        default=DEFAULT_API_CONFIG,
        help="API credentials file that must exist before the host is applied",
    )
    parser.add_argument(
        "--detailed-exitcode",
        action="store_true",
        help="Exit with 2 when the host needs changes",
    )
    return parser.parse_args(argv)


def load_json(value: str, field_name: str) -> dict[str, Any]:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise InputError(f"{field_name} must be valid JSON") from exc
    if not isinstance(data, dict):
        raise InputError(f"{field_name} must be a JSON object")
    return data


def run(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)
    except InputError as exc:
        log("error", "input_error", message=str(exc))
        return map_exception_to_exit_code(exc)

    try:
        desired_data = load_json(args.desired_json, "desired-json")
        observed_data = (
            load_json(args.observed_json, "observed-json") if args.observed_json is not None else None
        )
    except InputError as exc:
        log("error", "input_error", message=str(exc))
        return map_exception_to_exit_code(exc)

    context = {"hostname": desired_data.get("hostname")}
    log("info", "reconcile_started", observed=observed_data is not None, **context)

    try:
        desired = HostSpec.from_declaration(
            desired_data,
            log=lambda level, message: log(level, "deprecation", message=message, **context),
        )
        observed = HostSpec.from_observed(observed_data) if observed_data is not None else None
        changeset = compare(
            desired,
            observed,
            log=lambda level, message: log(level, "property_out_of_sync", message=message, **context),
        )
    except ValidationError as exc:
        log("error", "validation_error", message=str(exc), **context)
        return map_exception_to_exit_code(exc)
    except InvalidValueError as exc:
        log("error", "invalid_value_error", message=str(exc), **context)
        return map_exception_to_exit_code(exc)
    except PydanticValidationError as exc:
        log(
            "error",
            "input_error",
            message=f"host state failed schema validation ({exc.error_count()} errors)",
            **context,
        )
        return map_exception_to_exit_code(exc)

    payload = build_changeset_payload(desired, changeset, api_config=args.api_config)
    log(
        "info",
        "reconcile_complete",
        action=payload["action"],
        out_of_sync=len(payload["changes"]),
        **context,
    )
    print(json.dumps(payload, sort_keys=True), flush=True)

    if args.detailed_exitcode and changeset.needs_change:
        return int(ExitCode.CHANGES_PENDING)
    return int(ExitCode.SUCCESS)


def main() -> int:
    return run()
