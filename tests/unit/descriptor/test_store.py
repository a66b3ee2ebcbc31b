"""Tests for descriptor file storage."""

from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from servermon.config import GlobalSettings
from servermon.descriptor import DescriptorDocument, DescriptorStore, render
from servermon.exceptions import DescriptorIOError
from servermon.manifest import ServiceRecord


@pytest.fixture
def store(settings: GlobalSettings) -> DescriptorStore:
    return DescriptorStore(settings.source_path, settings.active_path)


def _document(settings: GlobalSettings, command: str = "npm start") -> DescriptorDocument:
    service = ServiceRecord(name="API", identifier="com.test.api", command=command)
    return render(service, settings)


class TestDescriptorStorePaths:
    def test_paths_use_identifier_and_suffix(
        self, store: DescriptorStore, settings: GlobalSettings
    ) -> None:
        assert store.source_path("com.test.api") == settings.source_path / "com.test.api.plist"
        assert store.active_path("com.test.api") == settings.active_path / "com.test.api.plist"


class TestDescriptorStoreWrite:
    def test_publish_writes_identical_copies(
        self, store: DescriptorStore, settings: GlobalSettings
    ) -> None:
        document = _document(settings)
        active = store.publish(document)

        assert active == store.active_path("com.test.api")
        assert store.read(active) == document.content
        assert store.read(store.source_path("com.test.api")) == document.content

    def test_read_missing_is_none(self, store: DescriptorStore) -> None:
        assert store.read(store.active_path("com.test.none")) is None

    def test_crash_before_rename_keeps_old_content(
        self, store: DescriptorStore, settings: GlobalSettings, mocker: MockerFixture
    ) -> None:
        old = _document(settings)
        _ = store.publish(old)
        _ = mocker.patch.object(Path, "replace", side_effect=OSError("killed"))

        with pytest.raises(DescriptorIOError) as exc_info:
            store.write(_document(settings, command="npm run dev"), store.active_path("com.test.api"))

        assert exc_info.value.operation == "write"
        assert store.read(store.active_path("com.test.api")) == old.content
        leftovers = [p.name for p in settings.active_path.iterdir()]
        assert leftovers == ["com.test.api.plist"]

    def test_publish_fails_if_active_write_fails(
        self, store: DescriptorStore, settings: GlobalSettings, mocker: MockerFixture
    ) -> None:
        real_write = store.write

        def write(document: DescriptorDocument, path: Path) -> None:
            if path.parent == settings.active_path:
                raise DescriptorIOError("nope", path=path, operation="write")
            real_write(document, path)

        _ = mocker.patch.object(store, "write", side_effect=write)
        with pytest.raises(DescriptorIOError):
            _ = store.publish(_document(settings))
        assert store.read(store.source_path("com.test.api")) is not None


class TestDescriptorStoreDelete:
    def test_delete_is_idempotent(
        self, store: DescriptorStore, settings: GlobalSettings
    ) -> None:
        active = store.publish(_document(settings))
        assert store.delete(active) is True
        assert store.delete(active) is False

    def test_remove_deletes_both_copies(
        self, store: DescriptorStore, settings: GlobalSettings
    ) -> None:
        _ = store.publish(_document(settings))
        store.remove("com.test.api")
        store.remove("com.test.api")
        assert not store.source_path("com.test.api").exists()
        assert not store.active_path("com.test.api").exists()


class TestExtractUnknownKeys:
    def test_returns_unmanaged_keys(
        self, store: DescriptorStore, settings: GlobalSettings
    ) -> None:
        service = ServiceRecord.model_validate(
            {
                "name": "API",
                "identifier": "com.test.api",
                "command": "npm start",
                "extraKeys": {"Nice": 5, "SoftResourceLimits": {"NumberOfFiles": 4096}},
            }
        )
        active = store.publish(render(service, settings))
        assert store.extract_unknown_keys(active) == {
            "Nice": 5,
            "SoftResourceLimits": {"NumberOfFiles": 4096},
        }

    def test_missing_file(self, store: DescriptorStore) -> None:
        assert store.extract_unknown_keys(store.active_path("com.test.none")) == {}

    def test_unparseable_file(self, store: DescriptorStore, settings: GlobalSettings) -> None:
        path = store.active_path("com.test.bad")
        path.parent.mkdir(parents=True)
        _ = path.write_text("<plist><dict><key>x</key>")
        with pytest.raises(DescriptorIOError) as exc_info:
            _ = store.extract_unknown_keys(path)
        assert exc_info.value.operation == "parse"
