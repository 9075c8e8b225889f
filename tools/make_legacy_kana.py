"""Fabricate a pre-cutoff (v0) kana file for exercising the legacy upgrader."""
import gzip
import json
import random
import sys
import uuid
from pathlib import Path

from kana_core.preamble import encode_preamble

STEPS = ["inputs", "quality_control", "normalization", "feature_selection", "pca"]


def generate_legacy_kana(output_dir: str, embedded: bool = True) -> Path:
    blobs = [random.randbytes(random.randint(16, 256)) for _ in range(2)] if embedded else []

    # v0 states record blob pointers inside the inputs step.
    pointers = []
    offset = 0
    for b in blobs:
        pointers.append({"offset": offset, "size": len(b)})
        offset += len(b)

    record = {
        "inputs": {
            "parameters": {"format": "10X", "files": pointers},
            "contents": {"num_cells": random.randint(100, 5000)},
        },
    }
    for step in STEPS[1:]:
        record[step] = {"parameters": {"seed": random.randint(0, 2**31 - 1)}}

    region = gzip.compress(json.dumps(record, sort_keys=True).encode("utf-8"))

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / f"legacy-{uuid.uuid4().hex[:8]}.kana"
    with open(path, "wb") as f:
        f.write(encode_preamble(embedded, len(region), version=0))
        f.write(region)
        for b in blobs:
            f.write(b)

    (out / f"{path.stem}.json").write_text(
        json.dumps({"record": record, "blobs": [b.hex() for b in blobs]}, indent=2) + "\n",
        encoding="utf-8",
    )

    print(f"GENERATED: {path}")
    return path


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a]
    linked = "--linked" in args
    args = [a for a in args if a != "--linked"]
    generate_legacy_kana(args[0] if args else "legacy_kana", embedded=not linked)
