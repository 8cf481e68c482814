"""
Unit tests for lock file persistence.

Tests entry serialization, loading, saving and change detection.
"""

import json
from pathlib import Path

import pytest

from opm.config.lockfile import (
    LOCAL_COMMIT,
    LOCKFILE_VERSION,
    LockEntry,
    LockFile,
    LockFileError,
    LockFileManager,
)

COMMIT = "0123456789abcdef0123456789abcdef01234567"


def entry(spec: str = "acme/widgets", commit: str = COMMIT) -> LockEntry:
    return LockEntry(
        specifier=spec,
        resolved=f"https://github.com/{spec.split('@')[0]}",
        commit=commit,
    )


class TestLockEntry:
    """Tests for LockEntry dataclass."""

    def test_to_dict(self):
        data = entry().to_dict()

        assert data == {
            "specifier": "acme/widgets",
            "resolved": "https://github.com/acme/widgets",
            "commit": COMMIT,
        }

    def test_from_dict(self):
        data = {"specifier": "path:../lib", "resolved": "../lib", "commit": "local"}

        result = LockEntry.from_dict(data)

        assert result.specifier == "path:../lib"
        assert result.is_local

    def test_from_dict_missing_field(self):
        with pytest.raises(KeyError):
            LockEntry.from_dict({"specifier": "a/b"})

    def test_is_local(self):
        assert not entry().is_local
        assert entry(commit=LOCAL_COMMIT).is_local


class TestLockFile:
    """Tests for the in-memory lock file."""

    def test_empty(self):
        lock = LockFile()

        assert lock.version == LOCKFILE_VERSION
        assert lock.packages == {}
        assert lock.get("widgets") is None

    def test_set_get_remove(self):
        lock = LockFile()
        lock.set("widgets", entry())

        assert lock.get("widgets") == entry()

        lock.remove("widgets")
        assert lock.get("widgets") is None

    def test_remove_absent_is_noop(self):
        lock = LockFile()
        lock.remove("ghost")
        assert lock.packages == {}

    def test_set_replaces(self):
        lock = LockFile()
        lock.set("widgets", entry())
        lock.set("widgets", entry(commit="f" * 40))

        assert lock.get("widgets").commit == "f" * 40

    def test_dumps_sorted(self):
        """Test that serialization is sorted by package name."""
        lock = LockFile()
        lock.set("zeta", entry("acme/zeta"))
        lock.set("alpha", entry("acme/alpha"))
        lock.set("mid", entry("acme/mid"))

        text = lock.dumps()

        assert list(json.loads(text)["packages"]) == ["alpha", "mid", "zeta"]
        assert text.endswith("}\n")
        assert '\n  "packages": {' in text

    def test_dumps_independent_of_insertion_order(self):
        first, second = LockFile(), LockFile()
        first.set("a", entry("acme/a"))
        first.set("b", entry("acme/b"))
        second.set("b", entry("acme/b"))
        second.set("a", entry("acme/a"))

        assert first.dumps() == second.dumps()

    def test_copy_is_independent(self):
        lock = LockFile()
        lock.set("widgets", entry())

        copy = lock.copy()
        copy.remove("widgets")

        assert lock.get("widgets") is not None


class TestLockFileManager:
    """Tests for LockFileManager load/save."""

    def test_path(self, temp_dir: Path):
        assert LockFileManager(temp_dir).lock_file_path == temp_dir / "opm.lock"

    def test_load_missing_returns_empty(self, temp_dir: Path):
        lock = LockFileManager(temp_dir).load()

        assert lock.packages == {}
        assert lock.version == 1
        assert not (temp_dir / "opm.lock").exists()

    def test_save_and_load(self, temp_dir: Path):
        manager = LockFileManager(temp_dir)
        lock = LockFile()
        lock.set("widgets", entry())
        lock.set("mylib", LockEntry("path:../mylib", "../mylib", LOCAL_COMMIT))

        manager.save(lock)
        loaded = manager.load()

        assert loaded.packages == lock.packages

    def test_save_format(self, temp_dir: Path):
        manager = LockFileManager(temp_dir)
        lock = LockFile()
        lock.set("widgets", entry())

        manager.save(lock)

        assert (temp_dir / "opm.lock").read_text() == (
            "{\n"
            '  "version": 1,\n'
            '  "packages": {\n'
            '    "widgets": {\n'
            '      "specifier": "acme/widgets",\n'
            '      "resolved": "https://github.com/acme/widgets",\n'
            f'      "commit": "{COMMIT}"\n'
            "    }\n"
            "  }\n"
            "}\n"
        )

    def test_save_leaves_no_temp_files(self, temp_dir: Path):
        LockFileManager(temp_dir).save(LockFile())

        assert [p.name for p in temp_dir.iterdir() if "opm.lock" in p.name] == ["opm.lock"]

    def test_load_invalid_json(self, temp_dir: Path):
        (temp_dir / "opm.lock").write_text("{not json")

        with pytest.raises(LockFileError, match="may be corrupted"):
            LockFileManager(temp_dir).load()

    def test_load_invalid_structure(self, temp_dir: Path):
        (temp_dir / "opm.lock").write_text('{"version": 1, "packages": {"a": {}}}')

        with pytest.raises(LockFileError):
            LockFileManager(temp_dir).load()

    def test_load_unsupported_version(self, temp_dir: Path):
        (temp_dir / "opm.lock").write_text('{"version": 2, "packages": {}}')

        with pytest.raises(LockFileError, match="Unsupported lock file version 2"):
            LockFileManager(temp_dir).load()

    def test_save_if_changed(self, temp_dir: Path):
        manager = LockFileManager(temp_dir)
        lock = LockFile()
        lock.set("widgets", entry())

        assert manager.save_if_changed(lock, LockFile()) is True
        mtime = (temp_dir / "opm.lock").stat().st_mtime_ns

        assert manager.save_if_changed(lock, lock.copy()) is False
        assert (temp_dir / "opm.lock").stat().st_mtime_ns == mtime

    def test_save_if_changed_creates_missing_file(self, temp_dir: Path):
        """Test that an unchanged but never-written lock file is created."""
        manager = LockFileManager(temp_dir)

        assert manager.save_if_changed(LockFile(), LockFile()) is True
        assert (temp_dir / "opm.lock").exists()
