"""In-memory kana payloads.

The whole payload lives in one contiguous buffer: preamble, state region,
then (embedded only) the blob region.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterable, Union
from warnings import warn

from kana_core.errors import BlobOutOfRange, KanaIOError, MalformedPreamble
from kana_core.preamble import decode_preamble, encode_preamble
from kana_core.protocol import PREAMBLE_LEN
from kana_io.fsutil import atomic_output
from kana_io.legacy import upgrade_region
from kana_io.result import KanaFile

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]
StateSink = Union[str, Path, BinaryIO]


def _byte_view(obj: BytesLike) -> memoryview:
    view = memoryview(obj)
    return view if view.format == "B" and view.ndim == 1 else view.cast("B")


def build_buffer(state: BytesLike, inputs: Iterable[BytesLike] | None = None) -> bytearray:
    """Assemble a complete payload. `inputs=None` selects linked, any list selects embedded."""
    embedded = inputs is not None
    state_view = _byte_view(state)
    blob_views = [_byte_view(b) for b in inputs] if embedded else []

    preamble = encode_preamble(embedded, len(state_view))
    total = PREAMBLE_LEN + len(state_view) + sum(len(v) for v in blob_views)

    output = bytearray(total)
    output[:PREAMBLE_LEN] = preamble
    offset = PREAMBLE_LEN

    output[offset:offset + len(state_view)] = state_view
    offset += len(state_view)

    for view in blob_views:
        output[offset:offset + len(view)] = view
        offset += len(view)

    if offset != total:
        raise AssertionError(f"payload accounting error: {offset} != {total}")
    return output


def _write_state(region: memoryview, sink: StateSink) -> None:
    if isinstance(sink, (str, Path)):
        with atomic_output(sink) as f:
            f.write(region)
        return

    try:
        sink.write(region)
    except OSError as exc:
        raise KanaIOError(getattr(sink, "name", "<stream>"), "write", str(exc)) from exc


def _upgrade_state(region: memoryview, sink: StateSink) -> None:
    if isinstance(sink, (str, Path)):
        upgrade_region(region, sink)
        return

    # The converter works on paths, so stage through a scratch directory.
    with tempfile.TemporaryDirectory(prefix="kana-legacy-") as scratch:
        staged = upgrade_region(region, Path(scratch) / "state")
        with open(staged, "rb") as f:
            shutil.copyfileobj(f, sink)


def parse_buffer(buffer: BytesLike, state_sink: StateSink) -> KanaFile:
    """Extract the state region into `state_sink` and expose embedded blobs.

    `state_sink` is a path or a writable binary file object. The loader keeps
    a view of `buffer` when it is `bytes` and a copy of the blob region otherwise.
    """
    view = _byte_view(buffer)
    pre = decode_preamble(view)
    end = pre.blob_base
    if end > len(view):
        raise MalformedPreamble(f"state length {pre.state_len} runs past end of {len(view)}-byte payload")
    logger.debug("decoded preamble version=%d embedded=%s state_len=%d", pre.version, pre.embedded, pre.state_len)

    region = view[PREAMBLE_LEN:end]
    if pre.is_legacy:
        _upgrade_state(region, state_sink)
    else:
        _write_state(region, state_sink)

    if not pre.embedded:
        if len(view) > end:
            warn(f"Linked kana payload has {len(view) - end} trailing bytes after the state region", RuntimeWarning)
        return KanaFile(version=pre.version, embedded=False)

    # Immutable buffers are sliced in place; anything else is copied so the
    # caller stays free to resize or reuse it.
    blobs = view[end:] if isinstance(buffer, bytes) else bytes(view[end:])

    def load(offset: int, size: int) -> bytes:
        if offset < 0 or size < 0 or offset + size > len(blobs):
            raise BlobOutOfRange(f"[{offset}, {offset + size}) not within {len(blobs)}-byte blob region")
        return bytes(blobs[offset:offset + size])

    return KanaFile(version=pre.version, embedded=True, load=load)
