"""Kana error taxonomy."""
from __future__ import annotations

from pathlib import Path

ERRORS = {
  "E_MALFORMED_PREAMBLE": "Preamble is truncated or declares an unknown format kind",
  "E_UNSUPPORTED_VERSION": "Format version is newer than this reader supports",
  "E_SIZE_UNREPRESENTABLE": "Length cannot be recorded exactly in the preamble",
  "E_IO": "Filesystem operation failed",
  "E_DECOMPRESSION": "Legacy state region could not be decompressed",
  "E_LEGACY_UPGRADE": "Legacy state could not be converted",
  "E_BLOB_RANGE": "Requested blob lies outside the blob region",
}


class KanaError(Exception):
    code = "E_KANA"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = ERRORS.get(self.code, "Kana error")
        super().__init__(f"{message}: {detail}" if detail else message)


class MalformedPreamble(KanaError, ValueError):
    code = "E_MALFORMED_PREAMBLE"


class UnsupportedVersion(KanaError, ValueError):
    """Reserved for a future upper version bound. Not raised yet."""

    code = "E_UNSUPPORTED_VERSION"


class SizeUnrepresentable(KanaError, ValueError):
    code = "E_SIZE_UNREPRESENTABLE"


class KanaIOError(KanaError, OSError):
    """Filesystem failure annotated with the offending path and the stage."""

    code = "E_IO"

    def __init__(self, path: str | Path, phase: str, detail: str = "") -> None:
        self.path = Path(path)
        self.phase = phase
        KanaError.__init__(self, f"{phase} {self.path}" + (f" ({detail})" if detail else ""))


class DecompressionFailed(KanaError):
    code = "E_DECOMPRESSION"


class LegacyUpgradeFailed(KanaError):
    code = "E_LEGACY_UPGRADE"


class BlobOutOfRange(KanaError, IndexError):
    code = "E_BLOB_RANGE"
