"""Tests for descriptor rendering."""

import plistlib
from typing import Any

import pytest

from servermon.config import GlobalSettings
from servermon.descriptor import (
    JSON,
    BoolNode,
    DictNode,
    StringNode,
    build_path_variable,
    build_tree,
    log_paths,
    render,
)
from servermon.exceptions import (
    MissingCommandError,
    MissingIdentifierError,
    ServiceValidationError,
)
from servermon.manifest import ServiceRecord


def _service(**fields: Any) -> ServiceRecord:
    data: dict[str, Any] = {
        "name": "Test",
        "identifier": "com.test.test",
        "command": ["python3", "-m", "http.server", "9999"],
    }
    data.update(fields)
    return ServiceRecord.model_validate(data)


def _parsed(service: ServiceRecord, settings: GlobalSettings) -> dict[str, Any]:
    return plistlib.loads(render(service, settings).content)


class TestRender:
    def test_http_server_scenario(self, settings: GlobalSettings) -> None:
        service = _service(path="/tmp", port=9999)
        document = render(service, settings)

        assert b"<string>python3</string>" in document.content
        data = plistlib.loads(document.content)
        assert data["StandardOutPath"].endswith("test.log")
        assert data["StandardErrorPath"] == "/var/log/servermon/test.error.log"
        assert data["WorkingDirectory"] == "/tmp"
        assert data["Label"] == "com.test.test"
        assert document.filename == "com.test.test.plist"

    def test_key_order(self, settings: GlobalSettings) -> None:
        service = _service(
            path="/srv",
            throttleInterval=10,
            extraKeys={"Nice": 5},
        )
        assert build_tree(service, settings).keys() == [
            "Label",
            "ProgramArguments",
            "WorkingDirectory",
            "RunAtLoad",
            "KeepAlive",
            "ThrottleInterval",
            "StandardOutPath",
            "StandardErrorPath",
            "EnvironmentVariables",
            "Nice",
        ]

    def test_deterministic(self, settings: GlobalSettings) -> None:
        service = _service(environmentVariables={"B": "2", "A": "1"})
        assert render(service, settings).content == render(service, settings).content

    def test_no_working_directory_without_path(self, settings: GlobalSettings) -> None:
        assert "WorkingDirectory" not in _parsed(_service(), settings)

    def test_working_directory_expands_tilde(
        self, settings: GlobalSettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HOME", "/Users/dev")
        assert _parsed(_service(path="~/code/api"), settings)["WorkingDirectory"] == (
            "/Users/dev/code/api"
        )

    def test_string_command_is_tokenized(self, settings: GlobalSettings) -> None:
        data = _parsed(_service(command="npm  run dev"), settings)
        assert data["ProgramArguments"] == ["npm", "run", "dev"]

    def test_disabled_does_not_run_at_load(self, settings: GlobalSettings) -> None:
        assert _parsed(_service(enabled=False), settings)["RunAtLoad"] is False

    @pytest.mark.parametrize("keep_alive", [True, False])
    def test_boolean_keep_alive(self, settings: GlobalSettings, keep_alive: bool) -> None:
        assert _parsed(_service(keepAlive=keep_alive), settings)["KeepAlive"] is keep_alive

    def test_successful_exit_only_renders_conditional_dict(
        self, settings: GlobalSettings
    ) -> None:
        tree = build_tree(_service(keepAlive={"successfulExitOnly": True}), settings)
        assert tree.get("KeepAlive") == DictNode((("SuccessfulExit", BoolNode(False)),))
        content = render(_service(keepAlive={"successfulExitOnly": True}), settings).content
        assert b"<key>SuccessfulExit</key>\n        <false/>" in content

    def test_synthesized_path(self, settings: GlobalSettings) -> None:
        env = _parsed(_service(), settings)["EnvironmentVariables"]
        assert env == {"PATH": "/opt/node/bin:/usr/local/bin:/usr/bin:/bin"}

    def test_explicit_path_wins(self, settings: GlobalSettings) -> None:
        env = _parsed(
            _service(environmentVariables={"PATH": "/custom/bin", "NODE_ENV": "dev"}), settings
        )["EnvironmentVariables"]
        assert env["PATH"] == "/custom/bin"
        assert "/opt/node/bin" not in env["PATH"]
        assert env["NODE_ENV"] == "dev"

    def test_no_environment_without_runtime_path(self) -> None:
        settings = GlobalSettings.model_validate(
            {"logDir": "/logs", "plistDir": "/p", "launchAgentsDir": "/a", "nodePath": ""}
        )
        assert "EnvironmentVariables" not in _parsed(_service(), settings)

    def test_escapes_free_text(self, settings: GlobalSettings) -> None:
        service = _service(
            command=["sh", "-c", "a && b < c"],
            path="/srv/R&D",
            environmentVariables={"GREETING": "\"hi\" 'there'"},
            extraKeys={"Comment": {"nested": ["<x>"]}},
        )
        content = render(service, settings).content
        assert b"a &amp;&amp; b &lt; c" in content
        assert b"/srv/R&amp;D" in content
        assert b"&lt;x&gt;" in content
        data = plistlib.loads(content)
        assert data["ProgramArguments"][2] == "a && b < c"
        assert data["EnvironmentVariables"]["GREETING"] == "\"hi\" 'there'"
        assert data["Comment"] == {"nested": ["<x>"]}

    def test_extra_keys_passthrough_types(self, settings: GlobalSettings) -> None:
        data = _parsed(
            _service(extraKeys={"Nice": -5, "AbandonProcessGroup": True, "Limits": [1, "a"]}),
            settings,
        )
        assert data["Nice"] == -5
        assert data["AbandonProcessGroup"] is True
        assert data["Limits"] == [1, "a"]

    def test_json_format(self, settings: GlobalSettings) -> None:
        document = render(_service(), settings, format=JSON)
        assert document.filename == "com.test.test.json"
        assert JSON.parse(document.content)["Label"] == "com.test.test"


class TestRenderValidation:
    def test_missing_identifier(self, settings: GlobalSettings) -> None:
        with pytest.raises(MissingIdentifierError) as exc_info:
            _ = render(_service(identifier=None), settings)
        assert exc_info.value.service_name == "Test"

    @pytest.mark.parametrize("command", [None, "", "   ", []])
    def test_missing_command(self, settings: GlobalSettings, command: object) -> None:
        with pytest.raises(MissingCommandError):
            _ = render(_service(command=command), settings)

    def test_extra_key_cannot_override_managed_key(self, settings: GlobalSettings) -> None:
        with pytest.raises(ServiceValidationError, match="managed key 'Label'"):
            _ = render(_service(extraKeys={"Label": "evil"}), settings)

    @pytest.mark.parametrize(
        ("fields", "field"),
        [
            ({"command": ["serve", "--tag", "a\x01b"]}, "command"),
            ({"path": "/srv/app\x1b"}, "path"),
            ({"environmentVariables": {"TOKEN": "abc\x00"}}, "environmentVariables"),
            ({"environmentVariables": {"BAD\x08KEY": "1"}}, "environmentVariables"),
            ({"extraKeys": {"Sockets": {"Listeners": ["\x0c"]}}}, "extraKeys"),
            ({"extraKeys": {"Nice\x02": 5}}, "extraKeys"),
            ({"extraKeys": {"Comment": "\ufffe"}}, "extraKeys"),
        ],
        ids=["argv", "path", "env_value", "env_key", "nested_extra", "extra_key", "nonchar"],
    )
    def test_rejects_xml_illegal_characters(
        self, settings: GlobalSettings, fields: dict[str, Any], field: str
    ) -> None:
        with pytest.raises(ServiceValidationError) as exc_info:
            _ = build_tree(_service(**fields), settings)
        assert exc_info.value.field == field
        assert exc_info.value.service_name == "Test"

    def test_allows_tab_newline_and_carriage_return(self, settings: GlobalSettings) -> None:
        service = _service(environmentVariables={"BANNER": "a\tb\nc\rd"})
        env = build_tree(service, settings).get("EnvironmentVariables")
        assert isinstance(env, DictNode)
        assert env.get("BANNER") == StringNode("a\tb\nc\rd")


class TestHelpers:
    def test_log_paths(self, settings: GlobalSettings) -> None:
        service = _service(identifier="com.test.web-app")
        assert log_paths(service, settings) == (
            "/var/log/servermon/web-app.log",
            "/var/log/servermon/web-app.error.log",
        )

    def test_build_path_variable(self) -> None:
        assert build_path_variable("/usr/local/opt/node@20/bin/node") == (
            "/usr/local/opt/node@20/bin:/usr/local/bin:/usr/bin:/bin"
        )

    def test_tree_is_all_strings_for_env(self, settings: GlobalSettings) -> None:
        env = build_tree(_service(environmentVariables={"A": "1"}), settings).get(
            "EnvironmentVariables"
        )
        assert isinstance(env, DictNode)
        assert env.get("A") == StringNode("1")
