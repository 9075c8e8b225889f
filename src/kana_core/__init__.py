"""Kana Core - On-disk protocol, preamble codec and error taxonomy."""
from .errors import (
    ERRORS,
    BlobOutOfRange,
    DecompressionFailed,
    KanaError,
    KanaIOError,
    LegacyUpgradeFailed,
    MalformedPreamble,
    SizeUnrepresentable,
    UnsupportedVersion,
)
from .preamble import (
    Preamble,
    decode_preamble,
    encode_preamble,
    format_version_string,
    parse_version_string,
)
from .protocol import FORMAT_VERSION, VERSION_BINARY_CUTOFF

KANA_FORMAT_VERSION = FORMAT_VERSION

__all__ = [
    "ERRORS",
    "BlobOutOfRange",
    "DecompressionFailed",
    "KanaError",
    "KanaIOError",
    "LegacyUpgradeFailed",
    "MalformedPreamble",
    "SizeUnrepresentable",
    "UnsupportedVersion",
    "Preamble",
    "decode_preamble",
    "encode_preamble",
    "format_version_string",
    "parse_version_string",
    "FORMAT_VERSION",
    "KANA_FORMAT_VERSION",
    "VERSION_BINARY_CUTOFF",
]
