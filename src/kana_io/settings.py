from __future__ import annotations

import os
from dataclasses import dataclass

from kana_core.protocol import DEFAULT_COPY_CHUNK_SIZE, DEFAULT_TEMP_PREFIX, MIN_COPY_CHUNK_SIZE


@dataclass(frozen=True)
class IOSettings:
    """Stream-mode settings loaded from environment with fail-fast validation."""

    copy_chunk_size: int = DEFAULT_COPY_CHUNK_SIZE
    temp_prefix: str = DEFAULT_TEMP_PREFIX
    fsync: bool = True

    @classmethod
    def from_env(cls) -> "IOSettings":
        return cls(
            copy_chunk_size=_get_env_int("KANA_COPY_CHUNK_SIZE", default=DEFAULT_COPY_CHUNK_SIZE, minimum=MIN_COPY_CHUNK_SIZE),
            temp_prefix=os.getenv("KANA_TEMP_PREFIX", DEFAULT_TEMP_PREFIX),
            fsync=_get_env_bool("KANA_FSYNC", default=True),
        ).normalized()

    def normalized(self) -> "IOSettings":
        """Validate all fields. Raises ValueError on invalid configuration."""
        if self.copy_chunk_size < MIN_COPY_CHUNK_SIZE:
            raise ValueError(f"copy_chunk_size must be >= {MIN_COPY_CHUNK_SIZE}, got {self.copy_chunk_size}")
        prefix = self.temp_prefix.strip()
        if not prefix:
            raise ValueError("KANA_TEMP_PREFIX must be non-empty")
        if os.sep in prefix or (os.altsep and os.altsep in prefix):
            raise ValueError(f"KANA_TEMP_PREFIX must not contain a path separator, got {prefix!r}")
        return IOSettings(copy_chunk_size=self.copy_chunk_size, temp_prefix=prefix, fsync=self.fsync)


def _get_env_int(name: str, *, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")
