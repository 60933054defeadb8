"""Tests for the session cookie codec."""

import os

import pytest

from conftest import make_session, make_settings
from familycare_web.config import ConfigurationError
from familycare_web.session_codec import SessionCodec
from familycare_web.session_data import CiphertextSession, PlaintextSession, Unrecognized


def test_round_trip_with_key(codec: SessionCodec) -> None:
    session = make_session()
    encoded = codec.serialize(session)
    assert codec.deserialize(encoded) == session
    assert isinstance(codec.decode(encoded), CiphertextSession)


def test_ciphertext_format_is_three_lowercase_hex_segments(codec: SessionCodec) -> None:
    encoded = codec.serialize(make_session())
    iv, tag, ciphertext = encoded.split(":")
    assert len(iv) == 32
    assert len(tag) == 32
    assert ciphertext
    for part in (iv, tag, ciphertext):
        assert part == part.lower()
        bytes.fromhex(part)
    assert "guardian@example.com" not in encoded


def test_fresh_iv_per_call(codec: SessionCodec) -> None:
    session = make_session()
    first, second = codec.serialize(session), codec.serialize(session)
    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_different_key_fails_closed(codec: SessionCodec) -> None:
    encoded = codec.serialize(make_session())
    other = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY="a different passphrase"))
    assert other.deserialize(encoded) is None
    assert isinstance(other.decode(encoded), Unrecognized)


def test_ciphertext_without_key_fails_closed(codec: SessionCodec) -> None:
    encoded = codec.serialize(make_session())
    keyless = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY=None))
    assert keyless.deserialize(encoded) is None


def test_tampered_ciphertext_fails_closed(codec: SessionCodec) -> None:
    iv, tag, ciphertext = codec.serialize(make_session()).split(":")
    flipped = format(int(ciphertext[:2], 16) ^ 0x01, "02x") + ciphertext[2:]
    assert codec.deserialize(":".join((iv, tag, flipped))) is None
    assert codec.deserialize(":".join((iv, "0" * 32, ciphertext))) is None


def test_legacy_plaintext_parses_without_key() -> None:
    session = make_session()
    legacy = (
        '{"userId":"user-123","email":"guardian@example.com","accessToken":"access-abc",'
        f'"refreshToken":"refresh-abc","expiresAt":{session.expires_at}}}'
    )
    keyless = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY=None))
    outcome = keyless.decode(legacy)
    assert isinstance(outcome, PlaintextSession)
    assert outcome.session == session


def test_legacy_plaintext_parses_with_key(codec: SessionCodec) -> None:
    session = make_session()
    assert codec.deserialize(session.to_json()) == session


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not a cookie",
        "null",
        "[]",
        '"just a string"',
        '{"userId":"u","email":"e","accessToken":"a","refreshToken":"r"}',
        '{"userId":"u","email":"e","accessToken":"a","refreshToken":"r","expiresAt":"1700000000"}',
        '{"userId":"u","email":"e","accessToken":"a","refreshToken":"r","expiresAt":true}',
        '{"userId":1,"email":"e","accessToken":"a","refreshToken":"r","expiresAt":1}',
        '{"userId":"","email":"e","accessToken":"a","refreshToken":"r","expiresAt":1}',
        "aa:bb",
        "aa:bb:cc:dd",
        "zz:yy:xx",
        "00112233445566778899aabbccddeeff:00112233445566778899aabbccddeeff:",
        "0011:00112233445566778899aabbccddeeff:abcd",
    ],
)
def test_garbage_decodes_to_no_session(codec: SessionCodec, raw) -> None:
    assert codec.deserialize(raw) is None


def test_random_bytes_decode_to_no_session(codec: SessionCodec) -> None:
    for _ in range(20):
        raw = ":".join(os.urandom(n).hex() for n in (16, 16, 48))
        assert codec.deserialize(raw) is None
        assert codec.deserialize(os.urandom(40).decode("latin-1")) is None


def test_truncated_ciphertext_fails_closed(codec: SessionCodec) -> None:
    encoded = codec.serialize(make_session())
    assert codec.deserialize(encoded[:-2]) is None


def test_production_without_key_refuses_plaintext() -> None:
    production = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY=None, APP_ENV="production"))
    with pytest.raises(ConfigurationError):
        production.serialize(make_session())


def test_development_without_key_writes_plaintext() -> None:
    session = make_session()
    development = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY=None))
    encoded = development.serialize(session)
    assert encoded == session.to_json()
    assert development.deserialize(encoded) == session


def test_serialized_json_has_exactly_the_session_fields() -> None:
    development = SessionCodec(make_settings(SESSION_ENCRYPTION_KEY=None))
    encoded = development.serialize(make_session())
    assert encoded.startswith('{"userId":"user-123","email":"guardian@example.com"')
    for key in ("accessToken", "refreshToken", "expiresAt"):
        assert f'"{key}"' in encoded
    assert "user_id" not in encoded
