# src/familycare_web/session_data.py

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel


class Session(BaseModel):
    """
    The authenticated identity of a guardian user, stored (encoded) in the session cookie.
    Replaced wholesale on refresh, never patched field by field.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    user_id: StrictStr = Field(min_length=1)
    email: StrictStr
    access_token: StrictStr
    refresh_token: StrictStr
    expires_at: StrictInt  # Unix seconds, always now + expires_in at issue time

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_json(self) -> str:
        # camelCase keys keep cookies written by the previous deployment readable
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class OAuthTransaction:
    """Parameters of one authorization round trip, held only in short-lived cookies."""
    provider: str
    code_verifier: str
    state: str


@dataclass(frozen=True)
class PartialOAuthTransaction:
    """Whatever transaction cookies the browser sent back; any of them may be missing."""
    provider: Optional[str] = None
    code_verifier: Optional[str] = None
    state: Optional[str] = None

    def complete(self) -> Optional[OAuthTransaction]:
        if not (self.provider and self.code_verifier and self.state):
            return None
        return OAuthTransaction(provider=self.provider, code_verifier=self.code_verifier, state=self.state)


# --- Decode outcomes of the session cookie value ---

@dataclass(frozen=True)
class PlaintextSession:
    session: Session


@dataclass(frozen=True)
class CiphertextSession:
    session: Session


@dataclass(frozen=True)
class Unrecognized:
    reason: str


DecodeOutcome = Union[PlaintextSession, CiphertextSession, Unrecognized]


# --- Sign-up outcomes ---

@dataclass(frozen=True)
class PendingConfirmation:
    """Sign-up accepted, but the provider wants the email confirmed before issuing tokens."""
    email: str


SignUpResult = Union[Session, PendingConfirmation]
