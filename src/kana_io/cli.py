"""Kana file developer tool - inspect, pack and unpack kana files."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import click

from kana_core.errors import KanaError
from kana_core.preamble import decode_preamble, format_version_string
from kana_core.protocol import PREAMBLE_LEN
from kana_io.stream import build_file, parse_file

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, **CANONICAL_JSON_KW))


def _parse_blob_spec(spec: str) -> tuple[int, int]:
    try:
        offset, size = (int(x) for x in spec.split(":"))
    except ValueError as exc:
        raise click.BadParameter(f"expected OFFSET:SIZE, got {spec!r}") from exc
    return offset, size


def _fatal(e: Exception) -> None:
    # Fail closed, with a single-line reason.
    click.echo(f"FATAL: {e}", err=True)
    raise SystemExit(1)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    show_default=True,
)
def main(log_level: str) -> None:
    logging.basicConfig(level=getattr(logging, log_level), format="%(levelname)s %(name)s: %(message)s")


@main.command("info")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info_cmd(path: Path) -> None:
    """Print the preamble of a kana file."""
    with open(path, "rb") as f:
        head = f.read(PREAMBLE_LEN)
    try:
        pre = decode_preamble(head)
    except KanaError as e:
        _fatal(e)

    size = os.path.getsize(path)
    _echo_json({
        "kind": "embedded" if pre.embedded else "linked",
        "embedded": pre.embedded,
        "version": pre.version,
        "version_string": format_version_string(pre.version),
        "legacy": pre.is_legacy,
        "state_len": pre.state_len,
        "blob_len": max(size - pre.blob_base, 0),
    })


@main.command("pack")
@click.argument("state", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("inputs", nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--linked", is_flag=True, help="Write a linked file; INPUTS must be empty")
@click.option("-o", "--out", "out", type=click.Path(dir_okay=False, path_type=Path), default=None)
def pack_cmd(state: Path, inputs: tuple[Path, ...], linked: bool, out: Path | None) -> None:
    """Bundle a STATE file and INPUTS into a kana file."""
    if linked and inputs:
        raise click.UsageError("--linked does not take INPUTS")
    try:
        res = build_file(state, None if linked else list(inputs), out_path=out)
    except KanaError as e:
        _fatal(e)
    click.echo(str(res))


@main.command("unpack")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("state_out", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--stage-dir", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("--blob", "blobs", multiple=True, help="Stage the blob at OFFSET:SIZE (repeatable)")
def unpack_cmd(path: Path, state_out: Path, stage_dir: Path | None, blobs: tuple[str, ...]) -> None:
    """Extract the state of a kana file and stage the requested blobs."""
    ranges = [_parse_blob_spec(b) for b in blobs]
    try:
        res = parse_file(path, state_out, staging_dir=stage_dir)
        if ranges and res.load is None:
            raise click.UsageError("--blob given for a linked kana file")
        staged = {f"{o}:{s}": str(res.load(o, s)) for o, s in ranges}
    except KanaError as e:
        _fatal(e)

    _echo_json({
        "version": res.version,
        "embedded": res.embedded,
        "state": str(state_out),
        "staged": staged,
    })


if __name__ == "__main__":
    main()
