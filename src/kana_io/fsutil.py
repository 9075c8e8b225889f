"""Filesystem plumbing shared by the stream reader and writer."""
from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from kana_core.errors import KanaError, KanaIOError


def durable_flush(f: BinaryIO, path: Path, fsync: bool = True) -> None:
    """Flush Python buffers and commit the file to disk."""
    try:
        f.flush()
        if fsync and hasattr(os, "fdatasync"):
            os.fdatasync(f.fileno())
        elif fsync:
            os.fsync(f.fileno())
    except OSError as exc:
        raise KanaIOError(path, "flush", exc.strerror or str(exc)) from exc


def copy_stream(
    src: BinaryIO,
    dst: BinaryIO,
    *,
    src_path: Path,
    dst_path: Path,
    length: int | None = None,
    chunk_size: int,
) -> int:
    """Copy `length` bytes from the current position of src (or until EOF when None).

    Returns the number of bytes copied. A short source is a read error.
    """
    copied = 0
    while length is None or copied < length:
        want = chunk_size if length is None else min(chunk_size, length - copied)
        try:
            chunk = src.read(want)
        except OSError as exc:
            raise KanaIOError(src_path, "read", exc.strerror or str(exc)) from exc

        if not chunk:
            if length is None:
                break
            raise KanaIOError(src_path, "read", f"unexpected EOF, {length - copied} bytes short")

        try:
            dst.write(chunk)
        except OSError as exc:
            raise KanaIOError(dst_path, "write", exc.strerror or str(exc)) from exc
        copied += len(chunk)

    return copied


@contextmanager
def atomic_output(path: str | Path, *, fsync: bool = True) -> Iterator[BinaryIO]:
    """Write through a sibling temporary file, renamed over `path` on success.

    On any failure the temporary file is removed and `path` is left untouched.
    """
    target = Path(path)
    tmp = target.with_name(f".{target.name}.{os.getpid()}.partial")
    try:
        f = open(tmp, "wb")
    except OSError as exc:
        raise KanaIOError(target, "open", exc.strerror or str(exc)) from exc

    try:
        with f:
            yield f
            durable_flush(f, target, fsync)
        os.replace(tmp, target)
    except KanaError:
        tmp.unlink(missing_ok=True)
        raise
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise KanaIOError(target, "write", exc.strerror or str(exc)) from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def make_temp_dir(prefix: str) -> Path:
    """Fresh directory under the system temp root. Ownership passes to the caller."""
    try:
        return Path(tempfile.mkdtemp(prefix=prefix))
    except OSError as exc:
        raise KanaIOError(tempfile.gettempdir(), "mkdir", exc.strerror or str(exc)) from exc


def remove_state_file(path: str | Path) -> None:
    """Remove an intermediate state file. Missing files are ignored."""
    Path(path).unlink(missing_ok=True)
