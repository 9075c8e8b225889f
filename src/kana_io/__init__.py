"""Kana IO - Build and parse kana files in memory or on disk."""
from .api import create_kana_file, parse_kana_file
from .buffer import build_buffer, parse_buffer
from .collect import BlobRef, EmbeddedFiles
from .fsutil import remove_state_file
from .legacy import read_upgraded_state, set_legacy_converter, upgrade_v0
from .result import KanaFile
from .settings import IOSettings
from .stream import BlobStager, build_file, parse_file

__all__ = [
    "create_kana_file",
    "parse_kana_file",
    "build_buffer",
    "parse_buffer",
    "BlobRef",
    "EmbeddedFiles",
    "remove_state_file",
    "read_upgraded_state",
    "set_legacy_converter",
    "upgrade_v0",
    "KanaFile",
    "IOSettings",
    "BlobStager",
    "build_file",
    "parse_file",
]
