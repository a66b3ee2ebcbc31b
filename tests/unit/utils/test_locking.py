"""Tests for servermon.utils._locking module."""

import threading
import time
from pathlib import Path

from servermon.utils import exclusive_lock, lock_path_for


class TestLockPathFor:
    def test_sidecar_name(self) -> None:
        assert lock_path_for(Path("/srv/services.json")) == Path("/srv/services.json.lock")


class TestExclusiveLock:
    def test_creates_lock_file(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "services.json"
        with exclusive_lock(target):
            assert lock_path_for(target).exists()

    def test_serializes_holders(self, tmp_path: Path) -> None:
        target = tmp_path / "services.json"
        events: list[str] = []

        def hold(label: str) -> None:
            with exclusive_lock(target):
                events.append(f"{label}-in")
                time.sleep(0.05)
                events.append(f"{label}-out")

        threads = [threading.Thread(target=hold, args=(name,)) for name in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Each holder leaves before the other enters
        assert events[0].endswith("-in")
        assert events[1] == events[0].replace("-in", "-out")
        assert events[2].endswith("-in")
        assert events[3] == events[2].replace("-in", "-out")
