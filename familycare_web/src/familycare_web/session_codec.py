"""Encoding of the session cookie value.

Write path: AES-256-GCM over the session JSON, emitted as
``ivHex:authTagHex:ciphertextHex``. The key is derived from
``SESSION_ENCRYPTION_KEY`` with scrypt and a fixed application salt.

Read path: the legacy plaintext JSON format is tried first so that sessions
issued before encryption was switched on keep working, then the ciphertext
format. Anything else decodes to ``Unrecognized`` and never raises.
"""

import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import ValidationError

from .config import ConfigurationError, Settings
from .session_data import CiphertextSession, DecodeOutcome, PlaintextSession, Session, Unrecognized

__all__ = ["SessionCodec", "derive_key"]

logger = logging.getLogger(__name__)

KEY_SALT = b"familycare-session-cookie"
KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16

# scrypt cost parameters (N, r, p)
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


def derive_key(secret: str) -> bytes:
    kdf = Scrypt(salt=KEY_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


def _parse_session_json(text: str) -> Optional[Session]:
    try:
        return Session.model_validate_json(text)
    except ValidationError:
        return None


class SessionCodec:
    """Pure encoder/decoder for the session cookie value. Performs no I/O."""

    def __init__(self, settings: Settings):
        self._secret = settings.SESSION_ENCRYPTION_KEY
        self._production = settings.is_production
        self._key: Optional[bytes] = None

    @property
    def encryption_enabled(self) -> bool:
        return self._secret is not None

    def _aead(self) -> AESGCM:
        # Settings are frozen, so the derived key is valid for the process lifetime
        if self._key is None:
            self._key = derive_key(self._secret)
        return AESGCM(self._key)

    def serialize(self, session: Session) -> str:
        payload = session.to_json()

        if not self.encryption_enabled:
            if self._production:
                raise ConfigurationError(
                    "SESSION_ENCRYPTION_KEY must be set in production; refusing to write a plaintext session cookie."
                )
            logger.warning("SESSION_ENCRYPTION_KEY is not set; writing a plaintext session cookie (development only).")
            return payload

        iv = os.urandom(IV_LENGTH)
        sealed = self._aead().encrypt(iv, payload.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return ":".join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decode(self, raw: Optional[str]) -> DecodeOutcome:
        if not raw:
            return Unrecognized("empty")

        session = _parse_session_json(raw)
        if session is not None:
            return PlaintextSession(session)

        return self._decode_ciphertext(raw)

    def deserialize(self, raw: Optional[str]) -> Optional[Session]:
        outcome = self.decode(raw)
        if isinstance(outcome, (PlaintextSession, CiphertextSession)):
            return outcome.session
        logger.debug("Session cookie not usable: %s", outcome.reason)
        return None

    def _decode_ciphertext(self, raw: str) -> DecodeOutcome:
        parts = raw.split(":")
        if len(parts) != 3:
            return Unrecognized("not plaintext JSON and not three ciphertext segments")
        if not self.encryption_enabled:
            return Unrecognized("ciphertext received but no encryption key configured")

        try:
            iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError:
            return Unrecognized("malformed hex segment")
        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH or not ciphertext:
            return Unrecognized("ciphertext segment of unexpected length")

        try:
            plaintext = self._aead().decrypt(iv, ciphertext + tag, None)
        except InvalidTag:
            return Unrecognized("authentication tag mismatch")

        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError:
            return Unrecognized("decrypted payload is not UTF-8")

        session = _parse_session_json(text)
        if session is None:
            return Unrecognized("decrypted payload is not a session")
        return CiphertextSession(session)
