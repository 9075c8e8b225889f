"""Upgrade pre-cutoff kana states.

Legacy payloads store the state as gzip-compressed JSON. The conversion of
that record into the current state representation is owned by the state
collaborator and is registered with set_legacy_converter(). The default
converter flattens the record into a Parquet table.
"""
from __future__ import annotations

import gzip
import json
import logging
import zlib
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from kana_core.errors import DecompressionFailed, LegacyUpgradeFailed
from kana_core.protocol import FORMAT_VERSION

logger = logging.getLogger(__name__)

LegacyConverter = Callable[[Any, Path], None]

UPGRADED_SCHEMA = pa.schema(
    [
        ("step", pa.string()),
        ("field", pa.string()),
        ("value", pa.string()),
    ]
)

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}


def decompress_state(region: bytes | bytearray | memoryview) -> bytes:
    try:
        return gzip.decompress(bytes(region))
    except (OSError, EOFError, zlib.error) as exc:
        raise DecompressionFailed(str(exc)) from exc


def parse_record(text: bytes) -> Any:
    try:
        return json.loads(text.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise LegacyUpgradeFailed(f"state is not a JSON document ({exc})") from exc


def convert_from_version0(record: Any, path: Path) -> None:
    """Write a v0 record {step: {field: value}} as a Parquet state table."""
    if not isinstance(record, dict):
        raise LegacyUpgradeFailed(f"v0 record must be a JSON object, got {type(record).__name__}")

    rows: list[dict] = []
    for step in sorted(record):
        fields = record[step]
        if not isinstance(fields, dict):
            raise LegacyUpgradeFailed(f"v0 step {step!r} must be a JSON object")
        for field in sorted(fields):
            rows.append({
                "step": step,
                "field": field,
                "value": json.dumps(fields[field], **CANONICAL_JSON_KW),
            })

    df = pd.DataFrame(rows, columns=["step", "field", "value"])
    table = pa.Table.from_pandas(df, schema=UPGRADED_SCHEMA, preserve_index=False)
    metadata = dict(table.schema.metadata or {})
    metadata[b"kana.format_version"] = str(FORMAT_VERSION).encode("ascii")
    metadata[b"kana.upgraded_from"] = b"0"
    pq.write_table(table.replace_schema_metadata(metadata), path)


def read_upgraded_state(path: str | Path) -> pd.DataFrame:
    return pq.read_table(Path(path)).to_pandas()


_converter: LegacyConverter = convert_from_version0


def set_legacy_converter(converter: LegacyConverter) -> LegacyConverter:
    """Register the v0 conversion hook. Returns the previous hook."""
    global _converter
    previous = _converter
    _converter = converter
    return previous


def get_legacy_converter() -> LegacyConverter:
    return _converter


def upgrade_v0(record: Any, state_sink_path: str | Path) -> Path:
    """Hand a decoded v0 record to the converter.

    On failure the sink is removed so that it is either fully written or absent.
    """
    sink = Path(state_sink_path)
    try:
        _converter(record, sink)
    except LegacyUpgradeFailed:
        sink.unlink(missing_ok=True)
        raise
    except Exception as exc:
        sink.unlink(missing_ok=True)
        raise LegacyUpgradeFailed(str(exc)) from exc

    logger.debug("upgraded v0 state into %s", sink)
    return sink


def upgrade_region(region: bytes | bytearray | memoryview, state_sink_path: str | Path) -> Path:
    """Gunzip, parse and upgrade a legacy state region."""
    record = parse_record(decompress_state(region))
    return upgrade_v0(record, state_sink_path)
