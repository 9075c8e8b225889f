"""Kana preamble codec and version helpers."""
from __future__ import annotations

import struct
from dataclasses import dataclass

from kana_core.errors import MalformedPreamble, SizeUnrepresentable
from kana_core.protocol import (
    FORMAT_EMBEDDED,
    FORMAT_LINKED,
    FORMAT_VERSION,
    MAX_SAFE_SIZE,
    PREAMBLE_FMT,
    PREAMBLE_LEN,
    VERSION_BINARY_CUTOFF,
)


@dataclass(frozen=True)
class Preamble:
    embedded: bool
    version: int
    state_len: int
    header_size: int = PREAMBLE_LEN

    @property
    def blob_base(self) -> int:
        """Absolute offset of the first byte after the state region."""
        return self.header_size + self.state_len

    @property
    def is_legacy(self) -> bool:
        return self.version < VERSION_BINARY_CUTOFF


def check_size(size: int, what: str = "state") -> int:
    if size < 0 or size >= MAX_SAFE_SIZE:
        raise SizeUnrepresentable(f"{what} size {size} outside [0, 2^53)")
    return int(size)


def encode_preamble(embedded: bool, state_len: int, *, version: int = FORMAT_VERSION) -> bytes:
    """Pack [kind, version, state_len] as three little-endian u64 fields."""
    kind = FORMAT_EMBEDDED if embedded else FORMAT_LINKED
    out = struct.pack(PREAMBLE_FMT, kind, version, check_size(state_len))
    if len(out) != PREAMBLE_LEN:
        raise AssertionError(f"preamble accounting error: {len(out)} != {PREAMBLE_LEN}")
    return out


def decode_preamble(data: bytes | bytearray | memoryview) -> Preamble:
    """Decode the first 24 bytes of a payload.

    Only the format kind is validated. Trailing bytes past the preamble are ignored.
    """
    if len(data) < PREAMBLE_LEN:
        raise MalformedPreamble(f"need {PREAMBLE_LEN} bytes, got {len(data)}")

    kind, version, state_len = struct.unpack_from(PREAMBLE_FMT, data, 0)
    if kind not in (FORMAT_EMBEDDED, FORMAT_LINKED):
        raise MalformedPreamble(f"unknown format kind {int(kind)}")

    return Preamble(
        embedded=(kind == FORMAT_EMBEDDED),
        version=int(version),
        state_len=int(state_len),
    )


def format_version_string(version: int) -> str:
    """Render an XXXYYYZZZ integer as 'X.Y.Z'."""
    major, rest = divmod(int(version), 1_000_000)
    minor, patch = divmod(rest, 1_000)
    return f"{major}.{minor}.{patch}"


def parse_version_string(text: str) -> int:
    parts = text.strip().split(".")
    if len(parts) != 3:
        raise ValueError(f"Version must look like X.Y.Z, got {text!r}")

    nums = [int(p) for p in parts]
    if any(n < 0 or n > 999 for n in nums):
        raise ValueError(f"Version components must be in [0, 999], got {text!r}")

    major, minor, patch = nums
    return major * 1_000_000 + minor * 1_000 + patch
