"""Tests for ptymux.codec."""

from __future__ import annotations

import pytest

from ptymux.codec import decode_payload, encode_payload
from ptymux.errors import MuxError, PayloadDecodeError


class TestCodec:
    def test_encode_is_standard_base64(self) -> None:
        assert encode_payload(b"echo hi\n") == "ZWNobyBoaQo="

    def test_control_and_invalid_utf8_bytes_survive(self) -> None:
        raw = b"\x1b[0m\xc3\x28\xff\x00\r\n"
        assert decode_payload(encode_payload(raw)) == raw

    def test_empty(self) -> None:
        assert encode_payload(b"") == ""
        assert decode_payload("") == b""

    @pytest.mark.parametrize("bad", ["not base64!", "abc", "é"])
    def test_invalid_payload(self, bad: str) -> None:
        with pytest.raises(PayloadDecodeError):
            decode_payload(bad)

    def test_decode_error_is_mux_error(self) -> None:
        assert issubclass(PayloadDecodeError, MuxError)
