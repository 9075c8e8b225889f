from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from kana_core.errors import KanaIOError

Blob = Union[bytes, bytearray, memoryview, str, Path]


@dataclass(frozen=True)
class BlobRef:
    offset: int
    size: int


@dataclass
class EmbeddedFiles:
    """Collects input blobs in embedding order while a state is being saved.

    Each save() returns the (offset, size) the blob will occupy in the blob
    region, for the state to record. Pass `collected` as the writer's inputs.
    """

    collected: list[Blob] = field(default_factory=list)
    total: int = 0

    def save(self, blob: Blob) -> BlobRef:
        if isinstance(blob, (str, Path)):
            try:
                size = Path(blob).stat().st_size
            except OSError as exc:
                raise KanaIOError(blob, "stat", exc.strerror or str(exc)) from exc
        else:
            size = memoryview(blob).nbytes

        ref = BlobRef(offset=self.total, size=size)
        self.collected.append(blob)
        self.total += size
        return ref
