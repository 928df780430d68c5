"""Authenticated identity attached to a request."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Closed set of roles, ordered by ``ROLE_LEVELS``."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

    def satisfies(self, required: "Role") -> bool:
        """Return True when this role is at or above ``required``."""
        return self.level >= required.level


ROLE_LEVELS: dict[Role, int] = {
    Role.USER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 4,
}


class AuthSource(str, Enum):
    """Where a principal's identity came from."""

    COGNITO = "cognito"
    SHARED_SECRET = "shared_secret"
    DEVELOPMENT = "development"


class Principal(BaseModel):
    """Identity built from verified token claims.

    Constructed fresh per request and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique subject identifier.")
    name: str | None = Field(default=None, description="Display name.")
    email: str | None = Field(default=None, description="Email address claim.")
    username: str | None = Field(default=None, description="Username claim.")
    role: Role = Field(default=Role.USER, description="Role used for authorization checks.")
    groups: frozenset[str] = Field(
        default_factory=frozenset,
        description="Identity-provider group memberships.",
    )
    token_use: str | None = Field(default=None, description="token_use claim (Cognito only).")
    auth_source: AuthSource = Field(..., description="Verifier that produced this principal.")


DEV_PRINCIPAL = Principal(
    id="dev-user",
    email="dev@c6group.ai",
    name="Development User",
    role=Role.ADMIN,
    auth_source=AuthSource.DEVELOPMENT,
)
