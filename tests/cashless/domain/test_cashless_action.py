"""Tests for the next-action variants and their stored form."""

import pytest
from cashless.attempt.action import (
    NoAction,
    QrPayload,
    RedirectUrl,
    TerminalAction,
    decode_action,
    encode_action,
)
from protean.exceptions import ValidationError


class TestEncodeAction:
    def test_redirect_url(self):
        assert encode_action(RedirectUrl("https://pay.example/abc")) == {
            "type": "redirect_url",
            "url": "https://pay.example/abc",
        }

    def test_qr_payload(self):
        assert encode_action(QrPayload("000201010212")) == {"type": "qr_payload", "payload": "000201010212"}

    def test_terminal_action(self):
        assert encode_action(TerminalAction("present_card")) == {
            "type": "terminal_action",
            "instruction": "present_card",
        }

    def test_none_variant_has_no_payload(self):
        assert encode_action(NoAction()) == {"type": "none"}

    def test_missing_action_encodes_as_none(self):
        assert encode_action(None) == {"type": "none"}

    def test_foreign_object_is_rejected(self):
        with pytest.raises(ValidationError):
            encode_action({"type": "redirect_url", "url": "https://x"})


class TestDecodeAction:
    def test_missing_action_decodes_as_none(self):
        assert decode_action(None) == NoAction()

    def test_decodes_each_variant(self):
        assert decode_action({"type": "redirect_url", "url": "https://x"}) == RedirectUrl("https://x")
        assert decode_action({"type": "qr_payload", "payload": "p"}) == QrPayload("p")
        assert decode_action({"type": "terminal_action", "instruction": "tap"}) == TerminalAction("tap")
        assert decode_action({"type": "none"}) == NoAction()

    @pytest.mark.parametrize(
        "stored",
        [
            {"type": "push_notification", "target": "x"},
            {"url": "https://x"},
            {"type": "redirect_url"},
            {"type": "redirect_url", "url": ""},
            {"type": "qr_payload", "payload": 42},
        ],
    )
    def test_malformed_shapes_are_rejected(self, stored):
        with pytest.raises(ValidationError) as exc_info:
            decode_action(stored)
        assert "action" in exc_info.value.messages

    def test_non_object_is_rejected(self):
        with pytest.raises(ValidationError):
            decode_action(["redirect_url", "https://x"])
