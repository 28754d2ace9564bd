import os
import stat
import tempfile
import uuid

import pytest

from gotenberg.fs import FileSystem


@pytest.fixture
def temp_root(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    return tmp_path


def test_working_dir_is_uuid():
    fs = FileSystem()
    assert str(uuid.UUID(fs.working_dir)) == fs.working_dir


def test_working_dirs_are_unique():
    names = {FileSystem().working_dir for _ in range(5)}
    assert len(names) == 5


def test_working_dir_path(temp_root):
    fs = FileSystem()
    assert fs.working_dir_path() == f"{temp_root}/{fs.working_dir}"


def test_new_dir_path_is_unique_and_inside_working_dir(temp_root):
    fs = FileSystem()
    first = fs.new_dir_path()
    second = fs.new_dir_path()
    prefix = fs.working_dir_path() + "/"
    assert first.startswith(prefix)
    assert second.startswith(prefix)
    assert first != second
    name = first[len(prefix):]
    assert str(uuid.UUID(name)) == name


def test_mkdir_all_creates_directory(temp_root):
    fs = FileSystem()
    path = fs.mkdir_all()
    assert os.path.isdir(path)
    assert os.path.dirname(path) == fs.working_dir_path()


def test_mkdir_all_uses_given_function():
    calls = []
    fs = FileSystem(lambda path, mode: calls.append((path, mode)))
    path = fs.mkdir_all()
    assert calls == [(path, 0o755)]


def test_mkdir_all_error():
    def failing(path, mode):
        raise PermissionError("denied")

    fs = FileSystem(failing)
    with pytest.raises(OSError, match="create directory .*denied"):
        fs.mkdir_all()


def test_mkdir_all_mode(temp_root):
    old = os.umask(0)
    try:
        path = FileSystem().mkdir_all()
    finally:
        os.umask(old)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o755