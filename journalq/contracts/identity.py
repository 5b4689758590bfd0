from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credential:
    """Verified caller identity plus the bearer token it was derived from.

    Passed explicitly into every core operation; upstream calls forward
    ``token`` as their own bearer credential.
    """

    user_id: str
    token: str = field(repr=False)
    email: str = ""
    name: str | None = None

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def __str__(self) -> str:
        return f"User({self.user_id})"
