from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """Credential and user id handed over by the auth provider."""

    token: str
    user_id: str

    @property
    def is_present(self) -> bool:
        return bool(self.token)

    def __repr__(self) -> str:
        return f"SessionIdentity(token='***', user_id={self.user_id!r})"
