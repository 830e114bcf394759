"""Atomic filesystem operations for test programs, manifests and YAML.

Provides:
    - Atomic writes: tmp file → fsync → rename (no truncated artifacts)
    - YAML load/save for machine configs and batch manifests
    - Directory creation with exist_ok semantics
    - Quiet removal of leftover temporary files

A program file or manifest is either complete on disk or absent; readers
(the controller's file loader, a human opening the batch folder) never
see a half-written file.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from src.utils import fs
    fs.atomic_yaml_dump(manifest, out_dir / "manifest.yaml")
    cfg = fs.load_yaml("axis.yaml")

Note: Module named `fs.py` rather than `io.py` to avoid shadowing stdlib `io`.
"""

import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)

    Notes
    -----
    Thread-safe (mkdir with exist_ok=True).
    Creates parent directories as needed.
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def tmp_path_for(path: Union[str, Path], tmp_suffix: str = ".tmp") -> Path:
    """Return the sibling temporary path used while *path* is being written.

    The temporary file lives in the same directory so the final rename
    stays on one filesystem.
    """
    path = Path(path)
    return path.with_suffix(path.suffix + tmp_suffix)


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    OSError
        If the temporary file cannot be written or renamed.  The
        temporary file is removed before the error propagates.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = tmp_path_for(path, tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except OSError:
        safe_remove(tmp_path)
        raise


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically.

    Parameters
    ----------
    obj : Any
        Python object (dict, list, primitives)
    path : Union[str, Path]
        Target YAML file path

    Notes
    -----
    Uses PyYAML safe_dump, so values must be plain builtins; convert
    ``Decimal`` to ``str`` before dumping.
    Preserves key ordering.
    """
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (``None`` for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def safe_remove(path: Union[str, Path]) -> bool:
    """Remove file or symlink (no error if missing).

    Returns
    -------
    bool
        True if removed, False if it didn't exist
    """
    path = Path(path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
