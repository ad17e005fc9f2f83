"""Atomic file replacement helpers.

Readers either see the previous file or the complete new one: data goes to a
temporary file in the same directory, is flushed to disk, and is then renamed
over the target with os.replace.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def write_atomic(path: Path, data: bytes) -> None:
    """Replace path with data; raises OSError and leaves no temp file behind."""

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_text_atomic(path: Path, text: str) -> None:
    """Text variant of write_atomic using UTF-8."""

    write_atomic(path, text.encode("utf-8"))
