import json

import pytest

from zabbix_host.errors import ExitCode
from zabbix_host.main import run


def _stderr_events(err: str) -> list[dict]:
    return [json.loads(line) for line in err.splitlines() if line.strip()]


def test_run_prints_changeset_for_out_of_sync_host(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run(
        [
            "--desired-json",
            json.dumps({"hostname": "web01", "groups": ["a", "b"], "port": 10050}),
            "--observed-json",
            json.dumps({"hostname": "web01", "id": "10084", "groups": ["a"], "port": "10050"}),
            "--detailed-exitcode",
        ]
    )

    out, err = capsys.readouterr()
    payload = json.loads(out)

    assert exit_code == ExitCode.CHANGES_PENDING
    assert payload["action"] == "update"
    assert payload["host_id"] == "10084"
    assert payload["changes"] == {"groups": ["a", "b"]}
    assert payload["requires"] == [{"kind": "file", "name": "/etc/zabbix/api.conf"}]
    assert payload["computed_at"].endswith("Z")
    assert [event["event"] for event in _stderr_events(err)] == [
        "reconcile_started",
        "property_out_of_sync",
        "reconcile_complete",
    ]


def test_run_in_sync_host_exits_successfully(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run(
        [
            "--desired-json",
            json.dumps({"hostname": "web01", "group": "webservers"}),
            "--observed-json",
            json.dumps({"hostname": "web01", "groups": ["webservers"]}),
            "--api-config",
            "/opt/zabbix/api.conf",
            "--detailed-exitcode",
        ]
    )

    out, err = capsys.readouterr()
    payload = json.loads(out)

    assert exit_code == ExitCode.SUCCESS
    assert payload["action"] == "none"
    assert payload["changes"] == {}
    assert payload["requires"] == [{"kind": "file", "name": "/opt/zabbix/api.conf"}]
    deprecations = [event for event in _stderr_events(err) if event["event"] == "deprecation"]
    assert len(deprecations) == 1
    assert deprecations[0]["level"] == "warning"


def test_run_missing_host_is_created(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run(["--desired-json", json.dumps({"hostname": "web01", "tls_connect": "psk"})])

    payload = json.loads(capsys.readouterr().out)

    assert exit_code == ExitCode.SUCCESS
    assert payload["action"] == "create"
    assert payload["changes"] == {"interface_type": 1, "tls_connect": 2}
    assert "host_id" not in payload


@pytest.mark.parametrize(
    ("desired", "expected"),
    [
        ({"hostname": "web01", "group": "a", "groups": ["b"]}, ExitCode.VALIDATION_ERROR),
        ({"hostname": "web01", "id": "10084"}, ExitCode.VALIDATION_ERROR),
        ({"hostname": "web01", "use_ip": "maybe"}, ExitCode.INVALID_VALUE_ERROR),
        ({"hostname": "web01", "tls_accept": 3}, ExitCode.INVALID_VALUE_ERROR),
        ({"hostname": "web01", "unknown": True}, ExitCode.INPUT_ERROR),
    ],
)
def test_run_maps_errors_to_exit_codes(
    desired: dict, expected: ExitCode, capsys: pytest.CaptureFixture[str]
) -> None:
    assert run(["--desired-json", json.dumps(desired)]) == expected

    out, err = capsys.readouterr()
    assert out == ""
    assert _stderr_events(err)[-1]["level"] == "error"


def test_run_rejects_invalid_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert run(["--desired-json", "{not json"]) == ExitCode.INPUT_ERROR

    event = _stderr_events(capsys.readouterr().err)[-1]
    assert event["event"] == "input_error"
    assert event["message"] == "desired-json must be valid JSON"


def test_run_requires_desired_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert run([]) == ExitCode.INPUT_ERROR
