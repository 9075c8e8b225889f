import io
import struct

import pytest

from kana_core.errors import BlobOutOfRange, MalformedPreamble, SizeUnrepresentable
from kana_core.protocol import FORMAT_VERSION
from kana_io.buffer import build_buffer, parse_buffer


def test_linked_empty_state_bytes(tmp_path):
    payload = build_buffer(b"", None)
    expected = (
        bytes([1, 0, 0, 0, 0, 0, 0, 0])
        + bytes([0x68, 0x88, 0x1E, 0, 0, 0, 0, 0])
        + bytes(8)
    )
    assert FORMAT_VERSION == 0x1E8868
    assert len(payload) == 24
    assert bytes(payload) == expected

    sink = tmp_path / "state.bin"
    res = parse_buffer(payload, sink)
    assert sink.read_bytes() == b""
    assert res.version == FORMAT_VERSION
    assert res.embedded is False
    assert res.load is None


def test_embedded_layout_and_loader(tmp_path):
    state = bytes([0x41, 0x42, 0x43])
    inputs = [bytes([0x01, 0x02]), bytes([0x03, 0x04, 0x05])]
    payload = build_buffer(state, inputs)

    assert len(payload) == 32
    assert payload[:8] == bytes(8)
    assert payload[24:27] == state
    assert payload[27:29] == bytes([0x01, 0x02])
    assert payload[29:32] == bytes([0x03, 0x04, 0x05])

    sink = tmp_path / "state.bin"
    res = parse_buffer(payload, sink)
    assert sink.read_bytes() == state
    assert res.embedded is True
    assert res.load(0, 2) == bytes([0x01, 0x02])
    assert res.load(2, 3) == bytes([0x03, 0x04, 0x05])


def test_round_trip_reconstructs_every_input(tmp_path):
    state = b"state-" * 100
    inputs = [b"", b"a", bytearray(b"bb" * 50), memoryview(b"ccc" * 1000), b""]
    payload = build_buffer(state, inputs)

    sink = io.BytesIO()
    res = parse_buffer(bytes(payload), sink)
    assert sink.getvalue() == state

    offset = 0
    for blob in inputs:
        size = len(bytes(blob))
        assert res.load(offset, size) == bytes(blob)
        offset += size


def test_zero_inputs_is_still_embedded():
    payload = build_buffer(b"xyz", [])
    assert payload[:8] == bytes(8)
    assert len(payload) == 27

    res = parse_buffer(payload, io.BytesIO())
    assert res.embedded is True
    assert res.load(0, 0) == b""


def test_build_does_not_mutate_inputs():
    state = bytearray(b"abc")
    blob = bytearray(b"\x01\x02")
    payload = build_buffer(state, [blob])
    payload[24] = 0xFF
    payload[27] = 0xFF
    assert state == bytearray(b"abc")
    assert blob == bytearray(b"\x01\x02")


def test_loader_rejects_out_of_range_requests():
    res = parse_buffer(build_buffer(b"", [b"1234"]), io.BytesIO())
    with pytest.raises(BlobOutOfRange):
        res.load(2, 3)
    with pytest.raises(BlobOutOfRange):
        res.load(-1, 1)


def test_malformed_kind_leaves_sink_absent(tmp_path):
    payload = bytearray(build_buffer(b"abc", None))
    payload[0] = 0x02
    sink = tmp_path / "state.bin"
    with pytest.raises(MalformedPreamble):
        parse_buffer(payload, sink)
    assert not sink.exists()


def test_truncated_payloads_are_malformed(tmp_path):
    sink = tmp_path / "state.bin"
    with pytest.raises(MalformedPreamble):
        parse_buffer(b"\x00" * 10, sink)

    short = struct.pack("<QQQ", 1, FORMAT_VERSION, 100) + b"only ten!!"
    with pytest.raises(MalformedPreamble):
        parse_buffer(short, sink)
    assert not sink.exists()


def test_linked_trailing_bytes_warn():
    payload = bytes(build_buffer(b"abc", None)) + b"junk"
    with pytest.warns(RuntimeWarning, match="trailing"):
        res = parse_buffer(payload, io.BytesIO())
    assert res.load is None


def test_state_size_limit_is_enforced(monkeypatch):
    import kana_core.preamble as preamble

    monkeypatch.setattr(preamble, "MAX_SAFE_SIZE", 4)
    with pytest.raises(SizeUnrepresentable):
        build_buffer(b"12345", None)


def test_parse_does_not_pin_a_mutable_buffer():
    payload = build_buffer(b"abc", [b"xy"])
    res = parse_buffer(payload, io.BytesIO())
    payload.extend(b"more")
    payload[27:29] = b"zz"
    assert res.load(0, 2) == b"xy"
