"""Test atomic filesystem operations.

Tests for src.utils.fs:
    - ensure_dir creates parents and is idempotent
    - Atomic writes replace the target and leave no temporary file
    - A failed write removes its temporary file and keeps the old target
    - YAML roundtrip preserves key order
    - safe_remove tolerates missing files

Run:
    pytest tests/test_fs.py -v
"""

import os

import pytest
import yaml

from src.utils import fs


# ============================================================================
# DIRECTORIES
# ============================================================================

def test_ensure_dir_creates_directory(tmp_path):
    """Test ensure_dir creates nested directories."""
    new_dir = tmp_path / "out" / "nested"
    assert fs.ensure_dir(new_dir) == new_dir
    assert new_dir.is_dir()


def test_ensure_dir_idempotent(tmp_path):
    """Test ensure_dir is idempotent."""
    fs.ensure_dir(tmp_path / "programs")
    fs.ensure_dir(tmp_path / "programs")
    assert (tmp_path / "programs").is_dir()


def test_tmp_path_for_is_sibling(tmp_path):
    """Temporary file sits next to its target."""
    target = tmp_path / "xtest0008.ngc"
    assert fs.tmp_path_for(target) == tmp_path / "xtest0008.ngc.tmp"
    assert fs.tmp_path_for(target, ".part").name == "xtest0008.ngc.part"


# ============================================================================
# ATOMIC WRITES
# ============================================================================

def test_atomic_write_bytes(tmp_path):
    """Test data lands complete and no tmp file remains."""
    target = tmp_path / "sub" / "prog.ngc"
    fs.atomic_write_bytes(target, b"G0 X1.0000\nM2\n")
    assert target.read_bytes() == b"G0 X1.0000\nM2\n"
    assert not fs.tmp_path_for(target).exists()


def test_atomic_write_overwrites(tmp_path):
    """Test a second write replaces the first."""
    target = tmp_path / "prog.ngc"
    fs.atomic_write_bytes(target, b"old")
    fs.atomic_write_bytes(target, b"new")
    assert target.read_bytes() == b"new"


def test_atomic_write_failure_cleans_up(tmp_path, monkeypatch):
    """Test a failed fsync keeps the old file and drops the tmp file."""
    target = tmp_path / "prog.ngc"
    target.write_bytes(b"old")

    def broken_fsync(fd):
        raise OSError(5, "I/O error")

    monkeypatch.setattr(os, "fsync", broken_fsync)
    with pytest.raises(OSError):
        fs.atomic_write_bytes(target, b"new")

    assert target.read_bytes() == b"old"
    assert not fs.tmp_path_for(target).exists()


# ============================================================================
# YAML
# ============================================================================

def test_atomic_yaml_roundtrip(tmp_path):
    """Test YAML write and load keep values and key order."""
    data = {"seed_entropy": "42", "programs": [{"jogs": 8, "status": "ok"}]}
    fs.atomic_yaml_dump(data, tmp_path / "manifest.yaml")

    loaded = fs.load_yaml(tmp_path / "manifest.yaml")
    assert loaded == data
    assert list(loaded) == ["seed_entropy", "programs"]


def test_load_yaml_missing(tmp_path):
    """Test missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_load_yaml_malformed(tmp_path):
    """Test parse errors name the file."""
    bad = tmp_path / "bad.yaml"
    bad.write_text("machine: [unclosed\n")
    with pytest.raises(yaml.YAMLError, match="bad.yaml"):
        fs.load_yaml(bad)


# ============================================================================
# REMOVAL
# ============================================================================

def test_safe_remove(tmp_path):
    """Test safe_remove reports whether anything was removed."""
    target = tmp_path / "prog.ngc.tmp"
    target.write_text("partial")
    assert fs.safe_remove(target) is True
    assert fs.safe_remove(target) is False
