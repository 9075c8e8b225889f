"""Kana payloads on disk.

Writers stream the state file and input files into the output without
holding them in memory. Readers stream the state region into the state sink
and hand back a lazy loader that stages embedded blobs on first request.
"""
from __future__ import annotations

import contextlib
import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Iterable
from warnings import warn

from kana_core.errors import BlobOutOfRange, KanaIOError
from kana_core.preamble import decode_preamble, encode_preamble
from kana_core.protocol import DEFAULT_OUTPUT_NAME, PREAMBLE_LEN
from kana_io.fsutil import atomic_output, copy_stream, durable_flush, make_temp_dir
from kana_io.legacy import upgrade_region
from kana_io.result import KanaFile
from kana_io.settings import IOSettings

logger = logging.getLogger(__name__)


def _open_source(path: Path) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as exc:
        raise KanaIOError(path, "open", exc.strerror or str(exc)) from exc


def _append_file(src_path: Path, dst: BinaryIO, dst_path: Path, length: int, chunk_size: int) -> int:
    with _open_source(src_path) as src:
        return copy_stream(src, dst, src_path=src_path, dst_path=dst_path, length=length, chunk_size=chunk_size)


def _stat_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        raise KanaIOError(path, "stat", exc.strerror or str(exc)) from exc


def _check_not_source(out: Path, sources: list[Path]) -> None:
    if not out.exists():
        return
    for src in sources:
        try:
            same = os.path.samefile(out, src)
        except OSError as exc:
            raise KanaIOError(src, "stat", exc.strerror or str(exc)) from exc
        if same:
            raise KanaIOError(out, "open", f"output would overwrite source {src}")


def build_file(
    state_path: str | Path,
    inputs: Iterable[str | Path] | None = None,
    *,
    out_path: str | Path | None = None,
    settings: IOSettings | None = None,
) -> Path:
    """Stream a state file and optional input files into a kana file.

    `inputs=None` writes a linked file. Without `out_path` the file is created
    as analysis.kana inside a fresh temp directory owned by the caller.
    """
    settings = settings or IOSettings.from_env()
    state = Path(state_path)
    embedded = inputs is not None
    input_paths = [Path(p) for p in inputs] if embedded else []

    # Sizes are fixed up front; a source that shrinks during the copy is an error.
    state_len = _stat_size(state)
    input_lens = [_stat_size(p) for p in input_paths]
    preamble = encode_preamble(embedded, state_len)

    out = Path(out_path) if out_path is not None else make_temp_dir(settings.temp_prefix) / DEFAULT_OUTPUT_NAME
    _check_not_source(out, [state, *input_paths])
    try:
        dst = open(out, "wb")
    except OSError as exc:
        raise KanaIOError(out, "open", exc.strerror or str(exc)) from exc

    try:
        try:
            dst.write(preamble)
        except OSError as exc:
            raise KanaIOError(out, "write", exc.strerror or str(exc)) from exc

        _append_file(state, dst, out, state_len, settings.copy_chunk_size)
        for p, n in zip(input_paths, input_lens):
            _append_file(p, dst, out, n, settings.copy_chunk_size)

        durable_flush(dst, out, settings.fsync)
    except BaseException:
        # close() flushes again; the first failure is the one reported.
        with contextlib.suppress(OSError):
            dst.close()
        raise

    try:
        dst.close()
    except OSError as exc:
        raise KanaIOError(out, "flush", exc.strerror or str(exc)) from exc

    logger.debug(
        "wrote %s embedded=%s state_len=%d inputs=%d blob_len=%d",
        out, embedded, state_len, len(input_paths), sum(input_lens),
    )
    return out


class BlobStager:
    """Lazy loader that copies embedded blobs into a staging directory.

    Each blob is staged at `staging_dir / str(offset)`. Once that file exists it
    is returned as-is on every later call, whatever its current contents.
    """

    def __init__(
        self,
        source: Path,
        blob_base: int,
        blob_len: int,
        staging_dir: Path,
        settings: IOSettings,
    ) -> None:
        self.source = Path(source)
        self.blob_base = blob_base
        self.blob_len = blob_len
        self.staging_dir = Path(staging_dir)
        self.settings = settings
        self._lock = threading.Lock()

    def __call__(self, offset: int, size: int) -> Path:
        target = self.staging_dir / str(int(offset))
        if target.exists():
            logger.debug("blob at offset %d already staged in %s", offset, target)
            return target

        if offset < 0 or size < 0 or offset + size > self.blob_len:
            raise BlobOutOfRange(f"[{offset}, {offset + size}) not within {self.blob_len}-byte blob region")

        with self._lock:
            if not target.exists():
                self._extract(offset, size, target)
        return target

    def _extract(self, offset: int, size: int, target: Path) -> None:
        with _open_source(self.source) as src:
            try:
                src.seek(self.blob_base + offset)
            except OSError as exc:
                raise KanaIOError(self.source, "read", exc.strerror or str(exc)) from exc

            with atomic_output(target, fsync=self.settings.fsync) as dst:
                copy_stream(
                    src,
                    dst,
                    src_path=self.source,
                    dst_path=target,
                    length=size,
                    chunk_size=self.settings.copy_chunk_size,
                )
        logger.debug("staged blob [%d, %d) into %s", offset, offset + size, target)


def _resolve_staging_dir(staging_dir: str | Path | None, settings: IOSettings) -> Path:
    if staging_dir is None:
        return make_temp_dir(settings.temp_prefix)

    stage = Path(staging_dir)
    try:
        stage.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise KanaIOError(stage, "mkdir", exc.strerror or str(exc)) from exc
    return stage


def parse_file(
    input_path: str | Path,
    state_sink_path: str | Path,
    *,
    staging_dir: str | Path | None = None,
    settings: IOSettings | None = None,
) -> KanaFile:
    """Extract the state of a kana file to `state_sink_path`.

    For embedded files the result carries a BlobStager as its loader. The
    staging directory is never deleted here, even when it was created here.
    """
    settings = settings or IOSettings.from_env()
    source = Path(input_path)

    with _open_source(source) as f:
        try:
            head = f.read(PREAMBLE_LEN)
            file_size = os.fstat(f.fileno()).st_size
        except OSError as exc:
            raise KanaIOError(source, "read", exc.strerror or str(exc)) from exc

        pre = decode_preamble(head)
        logger.debug("decoded preamble version=%d embedded=%s state_len=%d", pre.version, pre.embedded, pre.state_len)
        if pre.blob_base > file_size:
            raise KanaIOError(source, "read", f"state length {pre.state_len} runs past EOF at {file_size}")

        if pre.is_legacy:
            try:
                region = f.read(pre.state_len)
            except OSError as exc:
                raise KanaIOError(source, "read", exc.strerror or str(exc)) from exc
            if len(region) != pre.state_len:
                raise KanaIOError(source, "read", f"unexpected EOF, {pre.state_len - len(region)} bytes short")
            upgrade_region(region, state_sink_path)
        else:
            sink = Path(state_sink_path)
            with atomic_output(sink, fsync=settings.fsync) as out:
                copy_stream(
                    f,
                    out,
                    src_path=source,
                    dst_path=sink,
                    length=pre.state_len,
                    chunk_size=settings.copy_chunk_size,
                )

    blob_len = file_size - pre.blob_base
    if not pre.embedded:
        if blob_len > 0:
            warn(f"Linked kana file {source} has {blob_len} trailing bytes after the state region", RuntimeWarning)
        return KanaFile(version=pre.version, embedded=False)

    stage = _resolve_staging_dir(staging_dir, settings)
    return KanaFile(
        version=pre.version,
        embedded=True,
        load=BlobStager(source, pre.blob_base, blob_len, stage, settings),
    )
