"""Tests for the format_result dispatcher and OutputSettings."""

from __future__ import annotations

import json

from ledgerctl.output.formatters import OutputSettings, format_result
from ledgerctl.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(ok=False, op=op, error=ServiceError(code="ERR", message=msg))


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("files", count=1), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "files"
        assert data["data"]["count"] == 1

    def test_json_mode_error(self) -> None:
        data = json.loads(format_result(_err("journal", "Bad"), json_output=True))
        assert data["ok"] is False
        assert data["error"]["message"] == "Bad"

    def test_settings_overrides_shorthand(self) -> None:
        output = format_result(_ok("test", key="val"), settings=OutputSettings(), json_output=True)
        assert not output.startswith("{")


class TestFormatResultModes:
    def test_quiet(self) -> None:
        assert format_result(_ok("balances"), settings=OutputSettings(quiet=True)) == "OK: balances"

    def test_human(self) -> None:
        output = format_result(_ok("test", key="val"))
        assert "OK" in output
        assert "key: val" in output
