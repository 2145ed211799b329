"""Filesystem helpers for writing containers and scratch artifacts."""

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def atomic_write_bytes(path: Path, data: bytes, mode: int = 0o600) -> Path:
    """Write data to path via a temp file in the same directory and os.replace.

    Readers see either the previous file or the complete new one, never a
    partially written container. The temp file is removed if anything fails.

    Args:
        path: Destination file
        data: Complete file content
        mode: Permission bits for the new file

    Returns:
        The destination path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path


@contextmanager
def ephemeral_workdir(prefix: str) -> Iterator[Path]:
    """Yield a private scratch directory that is removed on every exit path."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp_dir:
        yield Path(tmp_dir)
