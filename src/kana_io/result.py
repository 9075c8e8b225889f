from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

BlobLoader = Callable[[int, int], Union[bytes, Path]]


@dataclass(frozen=True)
class KanaFile:
    """Outcome of parsing a kana payload.

    `load` extracts one embedded blob by (offset, size) relative to the blob
    region. It returns bytes for in-memory payloads and a staged file path
    for payloads read from disk. Linked payloads have no loader.
    """

    version: int
    embedded: bool
    load: Optional[BlobLoader] = None
