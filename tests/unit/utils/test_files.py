"""Unit tests for file helpers."""

from unittest.mock import patch

import pytest

from pyrock.utils.files import write_atomic


def test_write_atomic_creates_file(tmp_path):
    """Test the file and missing parent directories are created."""
    target = tmp_path / "public" / "screenshot.png"

    write_atomic(target, b"image")

    assert target.read_bytes() == b"image"


def test_write_atomic_replaces_existing(tmp_path):
    """Test an existing file is replaced and no temp files remain."""
    target = tmp_path / "screenshot.png"
    target.write_bytes(b"old")

    write_atomic(target, b"new")

    assert target.read_bytes() == b"new"
    assert [p.name for p in tmp_path.iterdir()] == ["screenshot.png"]


def test_write_atomic_failure_keeps_old_file(tmp_path):
    """Test a failed rename keeps the old file and removes the temp file."""
    target = tmp_path / "screenshot.png"
    target.write_bytes(b"old")

    with patch("pyrock.utils.files.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            write_atomic(target, b"new")

    assert target.read_bytes() == b"old"
    assert [p.name for p in tmp_path.iterdir()] == ["screenshot.png"]
