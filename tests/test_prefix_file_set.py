import datetime as dt
import os

import pytest

from serveline.prefix_file_set import FileSetError, PrefixFile, PrefixFileSet


def _make(path, size, mtime):
    path.write_bytes(b"x" * size)
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def log_dir(tmp_path):
    _make(tmp_path / "server.log.a", 10, 1000)
    _make(tmp_path / "server.log.b", 20, 2000)
    _make(tmp_path / "server.log.c", 30, 3000)
    _make(tmp_path / "other.txt", 40, 500)
    (tmp_path / "server.log.dir").mkdir()
    return tmp_path


def test_collects_only_matching_regular_files(log_dir):
    files = PrefixFileSet(log_dir / "server.log")
    assert len(files) == 3
    assert files.total_len() == 60


def test_delete_oldest_removes_oldest_file(log_dir):
    files = PrefixFileSet(log_dir / "server.log")
    files.delete_oldest()
    assert not (log_dir / "server.log.a").exists()
    assert (log_dir / "server.log.b").exists()
    assert files.total_len() == 50
    assert len(files) == 2


def test_delete_oldest_on_empty_set_raises(tmp_path):
    files = PrefixFileSet(tmp_path / "server.log")
    with pytest.raises(FileSetError):
        files.delete_oldest()


def test_delete_older_than(log_dir):
    files = PrefixFileSet(log_dir / "server.log")
    files.delete_older_than(3500, dt.timedelta(seconds=1000))
    assert not (log_dir / "server.log.a").exists()
    assert not (log_dir / "server.log.b").exists()
    assert (log_dir / "server.log.c").exists()
    assert files.total_len() == 30


def test_delete_older_than_keeps_files_at_boundary(log_dir):
    files = PrefixFileSet(log_dir / "server.log")
    files.delete_older_than(2000, 1000)
    assert (log_dir / "server.log.a").exists()
    assert len(files) == 3


def test_delete_oldest_while_over_max_len(log_dir):
    files = PrefixFileSet(log_dir / "server.log")
    files.delete_oldest_while_over_max_len(35)
    assert files.total_len() <= 35
    assert (log_dir / "server.log.c").exists()
    assert not (log_dir / "server.log.b").exists()
    assert (log_dir / "other.txt").exists()


def test_push_counts_toward_total_and_order(tmp_path):
    files = PrefixFileSet(tmp_path / "app.log")
    newer = _make(tmp_path / "app.log.new", 5, 5000)
    older = _make(tmp_path / "app.log.old", 7, 100)
    files.push(PrefixFile(newer, 5000, 5))
    files.push(PrefixFile(older, 100, 7))
    assert files.total_len() == 12
    files.delete_oldest()
    assert not older.exists()
    assert newer.exists()
    assert files.total_len() == 5


def test_prefix_files_compare_by_mtime(tmp_path):
    first = PrefixFile(tmp_path / "a", 1.0, 100)
    second = PrefixFile(tmp_path / "b", 2.0, 1)
    assert first < second
    assert PrefixFile(tmp_path / "c", 1.0, 5) == first


def test_missing_directory_raises(tmp_path):
    with pytest.raises(FileSetError):
        PrefixFileSet(tmp_path / "missing" / "server.log")


def test_path_without_parent_raises():
    with pytest.raises(FileSetError):
        PrefixFileSet("/")