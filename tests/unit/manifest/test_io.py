"""Tests for manifest file I/O."""

from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from servermon.exceptions import ManifestIOError, ManifestLoadError
from servermon.manifest import read_manifest_data, write_manifest_data


class TestReadManifestData:
    def test_missing_file_is_none(self, fs: FakeFilesystem) -> None:
        assert read_manifest_data(Path("/srv/services.json")) is None

    def test_parses_object(self, fs: FakeFilesystem) -> None:
        _ = fs.create_file("/srv/services.json", contents='{"services": []}')
        assert read_manifest_data(Path("/srv/services.json")) == {"services": []}

    def test_invalid_json(self, fs: FakeFilesystem) -> None:
        _ = fs.create_file("/srv/services.json", contents="{not json")
        with pytest.raises(ManifestLoadError, match="Invalid JSON") as exc_info:
            _ = read_manifest_data(Path("/srv/services.json"))
        assert exc_info.value.path == Path("/srv/services.json")

    def test_non_object_root(self, fs: FakeFilesystem) -> None:
        _ = fs.create_file("/srv/services.json", contents="[]")
        with pytest.raises(ManifestLoadError, match="must contain a JSON object"):
            _ = read_manifest_data(Path("/srv/services.json"))


class TestWriteManifestData:
    def test_two_space_indent_and_trailing_newline(self, fs: FakeFilesystem) -> None:
        path = Path("/srv/services.json")
        write_manifest_data(path, {"version": "2.0.0", "services": []})
        assert path.read_text() == '{\n  "version": "2.0.0",\n  "services": []\n}\n'

    def test_preserves_key_order(self, fs: FakeFilesystem) -> None:
        path = Path("/srv/services.json")
        write_manifest_data(path, {"z": 1, "a": 2})
        assert path.read_text().index('"z"') < path.read_text().index('"a"')

    def test_unserializable_raises(self, fs: FakeFilesystem) -> None:
        with pytest.raises(ManifestIOError, match="serialize"):
            write_manifest_data(Path("/srv/services.json"), {"bad": object()})
        assert not Path("/srv/services.json").exists()
