from pathlib import Path
from typing import cast

import pytest
from cyclopts import App
from pytest_mock import MockerFixture
from rich.console import Console

from servermon.cli._commands import (
    ExitCode,
    exit_code_for,
    exit_with_error,
    format_table,
    register_commands,
)
from servermon.exceptions import (
    ControlPlaneError,
    DescriptorIOError,
    DuplicateServiceError,
    ManifestIOError,
    ManifestLoadError,
    ServerMonError,
    ServiceNotFoundError,
    ServiceValidationError,
)
from tests.conftest import console_text


class TestExitCodeFor:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (ServiceNotFoundError("x", query="x"), ExitCode.NOT_FOUND),
            (ServiceValidationError("x"), ExitCode.VALIDATION_ERROR),
            (DuplicateServiceError("x"), ExitCode.VALIDATION_ERROR),
            (ManifestLoadError("x", path=Path("s.json")), ExitCode.LOAD_ERROR),
            (ManifestIOError("x", path=Path("s.json")), ExitCode.IO_ERROR),
            (DescriptorIOError("x", path=Path("a.plist"), operation="write"), ExitCode.IO_ERROR),
            (ControlPlaneError("x", identifier="com.test.api"), ExitCode.CONTROL_PLANE_ERROR),
            (ServerMonError("x"), ExitCode.CONTROL_PLANE_ERROR),
        ],
    )
    def test_mapping(self, error: ServerMonError, expected: ExitCode) -> None:
        assert exit_code_for(error) is expected


class TestFormatTable:
    def test_markdown_layout(self) -> None:
        table = format_table(["Name", "Port"], [["API", "3000"], ["Web", "-"]])
        lines = table.strip().splitlines()
        assert lines[0].startswith("|")
        assert "Name" in lines[0]
        assert set(lines[1]) <= {"|", "-", ":", " "}
        assert len(lines) == 4


class TestExitWithError:
    def test_prints_and_exits(self, error_console: Console) -> None:
        with pytest.raises(SystemExit) as exc_info:
            exit_with_error("it broke", ExitCode.IO_ERROR, console=error_console)
        assert exc_info.value.code == ExitCode.IO_ERROR
        assert "Error: it broke" in console_text(error_console)


class TestCommandRegistration:
    def test_registers_every_command(self, mocker: MockerFixture) -> None:
        mock_app = mocker.MagicMock(spec=App)
        register_commands(mock_app)

        names = [call.kwargs["name"] for call in mock_app.command.call_args_list]  # pyright: ignore[reportAny]
        assert cast("list[str]", names) == [
            "list",
            "status",
            "add",
            "start",
            "stop",
            "restart",
            "remove",
            "render",
        ]
