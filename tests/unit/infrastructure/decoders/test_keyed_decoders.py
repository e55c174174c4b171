"""Tests for XOR, envelope, delimited-radix and packed-js strategies."""

from __future__ import annotations

import base64
from itertools import cycle

import pytest

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import KeyDerivationFailed, MalformedPayload
from resolvarr.infrastructure.decoders.envelope import Envelope
from resolvarr.infrastructure.decoders.packer import PackedJavaScript, unpack
from resolvarr.infrastructure.decoders.radix import DelimitedRadix
from resolvarr.infrastructure.decoders.registry import default_decoder_registry
from resolvarr.infrastructure.decoders.substitution import ReverseHexOffset
from resolvarr.infrastructure.decoders.xor import RepeatingKeyXor

STREAM = "https://cdn.example/stream/master.m3u8"


def _payload(data: str) -> EncodedPayload:
    return EncodedPayload(data=data, origin_step_index=0)


def _xor_b64(plaintext: str, key: str) -> str:
    raw = bytes(a ^ b for a, b in zip(plaintext.encode(), cycle(key.encode())))
    return base64.urlsafe_b64encode(raw).decode()


class TestRepeatingKeyXor:
    def test_known_vector(self) -> None:
        ctx = DecodeContext(provider_id="p", aux_tokens={"session_id": "42"})
        assert RepeatingKeyXor().decode(_payload("XFs="), ctx) == "hi"

    def test_decodes_independent_vector(self) -> None:
        ctx = DecodeContext(provider_id="p", aux_tokens={"session_id": "s3cr3t"})
        encoded = _xor_b64(STREAM, "s3cr3t")
        assert RepeatingKeyXor().decode(_payload(encoded), ctx) == STREAM

    def test_missing_session_id(self) -> None:
        with pytest.raises(KeyDerivationFailed, match="session_id"):
            RepeatingKeyXor().decode(_payload("XFs="), DecodeContext(provider_id="p"))

    def test_timestamp_keyed(self) -> None:
        strategy = RepeatingKeyXor(strategy_id="xor-with-timestamp", key_token=None)
        ctx = DecodeContext(provider_id="p", request_timestamp="1700000000")
        encoded = _xor_b64(STREAM, "1700000000")
        assert strategy.decode(_payload(encoded), ctx) == STREAM

    def test_timestamp_missing(self) -> None:
        strategy = RepeatingKeyXor(strategy_id="xor-with-timestamp", key_token=None)
        with pytest.raises(KeyDerivationFailed, match="timestamp"):
            strategy.decode(_payload("XFs="), DecodeContext(provider_id="p"))

    def test_wrong_key_is_not_the_stream(self) -> None:
        ctx = DecodeContext(provider_id="p", aux_tokens={"session_id": "43"})
        try:
            decoded = RepeatingKeyXor().decode(_payload(_xor_b64(STREAM, "42")), ctx)
        except MalformedPayload:
            return
        assert decoded != STREAM


class TestEnvelope:
    def test_envelope_xor_from_registry(self) -> None:
        record = f"k9:{_xor_b64(STREAM, 'k9')}"
        outer = base64.urlsafe_b64encode(record.encode()).decode().rstrip("=")
        strategy = default_decoder_registry().get("envelope-xor")
        assert strategy.decode(_payload(outer), DecodeContext(provider_id="p")) == STREAM

    def test_record_without_separator(self) -> None:
        outer = base64.urlsafe_b64encode(b"no-separator-here").decode()
        strategy = default_decoder_registry().get("envelope-xor")
        with pytest.raises(MalformedPayload, match="identifier:blob"):
            strategy.decode(_payload(outer), DecodeContext(provider_id="p"))

    def test_encode_requires_identifier(self) -> None:
        strategy = default_decoder_registry().get("envelope-xor")
        with pytest.raises(KeyDerivationFailed, match="envelope_id"):
            strategy.encode(STREAM, DecodeContext(provider_id="p"))

    def test_encode_inverts_decode(self) -> None:
        strategy = default_decoder_registry().get("envelope-xor")
        ctx = DecodeContext(provider_id="p", aux_tokens={"envelope_id": "abc"})
        encoded = strategy.encode(STREAM, ctx)
        assert strategy.decode(_payload(encoded), DecodeContext(provider_id="p")) == STREAM

    def test_inner_strategy_can_be_any(self) -> None:
        outer = default_decoder_registry().get("urlsafe-base64")
        strategy = Envelope(strategy_id="envelope-hex", outer=outer, inner=ReverseHexOffset())
        record = "id:" + ReverseHexOffset().encode(STREAM, DecodeContext(provider_id="p"))
        data = base64.urlsafe_b64encode(record.encode()).decode()
        assert strategy.decode(_payload(data), DecodeContext(provider_id="p")) == STREAM


class TestDelimitedRadix:
    CTX = DecodeContext(
        provider_id="p",
        aux_tokens={"alphabet": "abcdefghij", "base": "2", "offset": "0"},
    )

    def test_known_vector(self) -> None:
        decoded = DelimitedRadix().decode(_payload("bbabaaacbbabaabc"), self.CTX)
        assert decoded == "hi"

    def test_offset_applied(self) -> None:
        ctx = self.CTX.with_tokens(offset="1")
        # 105 - 1 == "h", 106 - 1 == "i"
        assert DelimitedRadix().decode(_payload("bbabaabcbbababac"), ctx) == "hi"

    def test_encode_inverts_decode(self) -> None:
        ctx = DecodeContext(
            provider_id="p",
            aux_tokens={"alphabet": "nMqTuBgZrAe", "base": "7", "offset": "17"},
        )
        strategy = DelimitedRadix()
        encoded = strategy.encode(STREAM, ctx)
        assert strategy.decode(_payload(encoded), ctx) == STREAM

    def test_unterminated_segment(self) -> None:
        with pytest.raises(MalformedPayload, match="unterminated"):
            DelimitedRadix().decode(_payload("bbabaaacbb"), self.CTX)

    def test_empty_segment(self) -> None:
        with pytest.raises(MalformedPayload, match="empty segment"):
            DelimitedRadix().decode(_payload("bbabaaaccbbabaabc"), self.CTX)

    def test_digit_outside_base(self) -> None:
        with pytest.raises(MalformedPayload, match="base-2 digit"):
            DelimitedRadix().decode(_payload("bdc"), self.CTX)

    def test_missing_tokens(self) -> None:
        with pytest.raises(KeyDerivationFailed, match="alphabet"):
            DelimitedRadix().decode(_payload("bbc"), DecodeContext(provider_id="p"))

    def test_base_not_integer(self) -> None:
        ctx = self.CTX.with_tokens(base="two")
        with pytest.raises(KeyDerivationFailed, match="not an integer"):
            DelimitedRadix().decode(_payload("bbc"), ctx)

    def test_base_too_large_for_alphabet(self) -> None:
        ctx = self.CTX.with_tokens(base="10")
        with pytest.raises(KeyDerivationFailed, match="unusable"):
            DelimitedRadix().decode(_payload("bbc"), ctx)


def _packed(payload: str, words: list[str], base: int = 10) -> str:
    return (
        "eval(function(p,a,c,k,e,d){while(c--)if(k[c])p=p.replace("
        "new RegExp('\\\\b'+c.toString(a)+'\\\\b','g'),k[c]);return p}"
        f"('{payload}',{base},{len(words)},'{'|'.join(words)}'.split('|'),0,{{}}))"
    )


class TestPackedJavaScript:
    def test_unpack_replaces_tokens(self) -> None:
        assert unpack(_packed("0 1", ["hello", "world"])) == "hello world"

    def test_unknown_tokens_kept(self) -> None:
        assert unpack(_packed("0 5", ["hello"])) == "hello 5"

    def test_not_packed(self) -> None:
        assert unpack("var x = 1;") is None

    def test_strategy_unescapes_quotes(self) -> None:
        script = _packed(
            "0.1({2:\\'3\\'})",
            ["jwplayer", "setup", "file", STREAM],
        )
        decoded = PackedJavaScript().decode(_payload(script), DecodeContext(provider_id="p"))
        assert decoded == f"jwplayer.setup({{file:'{STREAM}'}})"

    def test_strategy_rejects_plain_script(self) -> None:
        with pytest.raises(MalformedPayload, match="no packed script"):
            PackedJavaScript().decode(_payload("var x;"), DecodeContext(provider_id="p"))
