"""Tests for the envelope codec."""

from __future__ import annotations

import json

import pytest

from tsterm.domain.models import Geometry, PeerInfo, SessionTarget
from tsterm.protocol.codec import Envelope, MalformedEnvelope, MessageType, decode, encode


class TestEncode:
    def test_wire_shape(self) -> None:
        assert json.loads(encode(MessageType.INPUT, "ls\r")) == {"type": "input", "data": "ls\r"}

    def test_accepts_type_value(self) -> None:
        assert json.loads(encode("ssh-host-action", "yes"))["type"] == "ssh-host-action"

    def test_lifecycle_notice_has_empty_data(self) -> None:
        assert json.loads(encode(MessageType.WS_OPENED)) == {
            "type": "ts-websocket-opened",
            "data": "",
        }

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode("ssh-shutdown", "")


class TestRoundTrip:
    @pytest.mark.parametrize(
        "data",
        [
            "",
            '{"type": "output", "data": "nested"}',
            'quote " backslash \\ brace } bracket ]',
            "\x1b[1;32mgreen\x1b[0m\r\n",
            "line one\nline two\ttab\x00nul",
            "unicode: café ☃ \U0001f600",
        ],
    )
    def test_payloads_survive(self, data: str) -> None:
        envelope = decode(encode(MessageType.OUTPUT, data))
        assert envelope.type is MessageType.OUTPUT
        assert envelope.data == data

    def test_every_type_survives(self) -> None:
        payloads = {
            MessageType.PEERS: "[]",
            MessageType.SIZE: Geometry(rows=24, cols=80).to_wire(),
        }
        for message_type in MessageType:
            data = payloads.get(message_type, "x:y")
            assert decode(encode(message_type, data)) == Envelope(type=message_type, data=data)


class TestDecode:
    def test_missing_data_is_empty(self) -> None:
        assert decode('{"type": "ssh-success"}').data == ""

    def test_null_data_is_empty(self) -> None:
        assert decode('{"type": "ts-websocket-error", "data": null}').data == ""

    def test_bytes_frame(self) -> None:
        envelope = decode('{"type": "output", "data": "café"}'.encode())
        assert envelope.data == "café"

    def test_unknown_extra_keys_ignored(self) -> None:
        envelope = decode('{"type": "info", "data": "hi", "seq": 3}')
        assert envelope == Envelope(type=MessageType.INFO, data="hi")

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "",
            '["info", "hello"]',
            '"info"',
            '{"data": "no type"}',
            '{"type": "shutdown", "data": ""}',
            '{"type": "info", "data": 42}',
            '{"type": "info", "data": {"nested": true}}',
        ],
    )
    def test_malformed_frames(self, frame: str) -> None:
        with pytest.raises(MalformedEnvelope):
            decode(frame)

    def test_malformed_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode("{")

    def test_bad_peers_payload_rejected_with_frame(self) -> None:
        with pytest.raises(MalformedEnvelope, match="peers"):
            decode(encode(MessageType.PEERS, '[{"shortDomain": "a"}]'))

    def test_bad_size_payload_rejected_with_frame(self) -> None:
        with pytest.raises(MalformedEnvelope, match="size"):
            decode(encode(MessageType.SIZE, '{"rows": -1, "cols": 80}'))


class TestPayload:
    def test_peers(self, sample_peers_json: str) -> None:
        peers = decode(encode(MessageType.PEERS, sample_peers_json)).payload()
        assert isinstance(peers, tuple)
        assert [p.short_domain for p in peers] == ["workstation", "Laptop"]
        assert peers[0] == PeerInfo(
            short_domain="workstation",
            domain="workstation.tail1234.ts.net.",
            ips=("100.64.0.2", "fd7a:115c:a1e0::2"),
        )

    def test_size(self) -> None:
        data = '{"rows": 40, "cols": 120, "x": 960, "y": 640}'
        assert decode(encode(MessageType.SIZE, data)).payload() == Geometry(
            rows=40, cols=120, x=960, y=640
        )

    def test_ssh_config(self) -> None:
        target = Envelope(type=MessageType.SSH_CONFIG, data="alice:s3cret:laptop:2222").payload()
        assert isinstance(target, SessionTarget)
        assert target.address == "laptop"
        assert target.port == 2222
        assert target.username == "alice"
        assert target.password.get_secret_value() == "s3cret"

    def test_bad_ssh_config(self) -> None:
        with pytest.raises(MalformedEnvelope, match="ssh-config"):
            Envelope(type=MessageType.SSH_CONFIG, data="alice:laptop:22").payload()

    def test_text_types_return_data(self) -> None:
        assert Envelope(type=MessageType.OUTPUT, data="$ ").payload() == "$ "
