"""Kana reader and writer facade.

Dispatches on input shape: bytes-like objects go through the in-memory
codec, paths go through the streaming codec.
"""
from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

from kana_io.buffer import BytesLike, StateSink, build_buffer, parse_buffer
from kana_io.result import KanaFile
from kana_io.settings import IOSettings
from kana_io.stream import build_file, parse_file

_BYTES_TYPES = (bytes, bytearray, memoryview)


def create_kana_file(
    state: Union[BytesLike, str, Path],
    inputs: Sequence[Union[BytesLike, str, Path]] | None = None,
    *,
    out_path: str | Path | None = None,
    settings: IOSettings | None = None,
) -> Union[bytearray, Path]:
    """Create a kana payload from a state and optional inputs.

    With a bytes-like state (and bytes-like inputs) the payload is returned as a
    bytearray. With a state path (and input paths) the payload is streamed to
    `out_path`, or to a fresh temp directory, and its path is returned.
    `inputs=None` selects a linked payload; an empty list is still embedded.
    """
    if isinstance(state, _BYTES_TYPES):
        if out_path is not None:
            raise ValueError("out_path is only meaningful for path-based states")
        if inputs is not None and not all(isinstance(i, _BYTES_TYPES) for i in inputs):
            raise TypeError("In-memory states require bytes-like inputs")
        return build_buffer(state, inputs)

    if inputs is not None and any(isinstance(i, _BYTES_TYPES) for i in inputs):
        raise TypeError("Path-based states require input paths")
    return build_file(state, inputs, out_path=out_path, settings=settings)


def parse_kana_file(
    source: Union[BytesLike, str, Path],
    state_sink: StateSink,
    *,
    staging_dir: str | Path | None = None,
    settings: IOSettings | None = None,
) -> KanaFile:
    """Extract the state of a kana payload into `state_sink`.

    The loader of an embedded result returns bytes when `source` is in memory
    and a staged file path when `source` is a path.
    """
    if isinstance(source, _BYTES_TYPES):
        return parse_buffer(source, state_sink)

    if not isinstance(state_sink, (str, Path)):
        raise TypeError("Reading from a path requires a state sink path")
    return parse_file(source, state_sink, staging_dir=staging_dir, settings=settings)
