"""Tests for configuration merging and environment parsing."""

import pytest

from servermon.config import copy_value, deep_merge, parse_env_vars, parse_string_value


class TestDeepMerge:
    def test_nested_dicts_merge(self) -> None:
        base = {"logging": {"level": "info", "format": "json"}}
        override = {"logging": {"level": "debug"}}
        assert deep_merge(base, override) == {
            "logging": {"level": "debug", "format": "json"}
        }

    def test_lists_and_scalars_replace(self) -> None:
        base = {"paths": ["/a", "/b"], "prefix": "com.a"}
        override = {"paths": ["/c"], "prefix": "com.b"}
        assert deep_merge(base, override) == {"paths": ["/c"], "prefix": "com.b"}

    def test_key_order_follows_base_then_override(self) -> None:
        merged = deep_merge({"b": 1, "a": 2}, {"c": 3, "a": 4})
        assert list(merged) == ["b", "a", "c"]

    def test_inputs_are_not_modified(self) -> None:
        base = {"nested": {"x": [1]}}
        override = {"nested": {"y": 2}}
        merged = deep_merge(base, override)
        merged["nested"]["x"].append(99)
        assert base == {"nested": {"x": [1]}}
        assert override == {"nested": {"y": 2}}


class TestCopyValue:
    def test_deep_copies_containers(self) -> None:
        original = {"a": [{"b": 1}]}
        copied = copy_value(original)
        assert copied == original
        assert copied["a"] is not original["a"]
        assert copied["a"][0] is not original["a"][0]


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-3", -3),
            ('["a", "b"]', ["a", "b"]),
            ('{"k": 1}', {"k": 1}),
            ("[not json", "[not json"),
            ("debug", "debug"),
        ],
    )
    def test_parses(self, raw: str, expected: object) -> None:
        assert parse_string_value(raw) == expected


class TestParseEnvVars:
    def test_nested_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVERMON_LOGGING__LEVEL", "debug")
        monkeypatch.setenv("SERVERMON_LOGGING__FILE", "/tmp/sm.log")
        result = parse_env_vars()
        assert result["logging"] == {"level": "debug", "file": "/tmp/sm.log"}

    def test_flat_variables_are_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVERMON_DEBUG", "1")
        monkeypatch.setenv("SERVERMON_MANIFEST", "/srv/services.json")
        result = parse_env_vars()
        assert "debug" not in result
        assert "manifest" not in result

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTHER_A__B", "7")
        assert parse_env_vars(prefix="OTHER_") == {"a": {"b": 7}}
