"""Authentication schemas for JWT tokens and caller identity."""

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from a bearer token.

    Populated by the auth dependency from the validated JWT.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'user', 'admin')")


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Represents the claims contained in an issued access token.
    """

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's id")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=self.sub,
            email=self.email,
            role=self.role,
        )


def first_present(*candidates: str | None) -> str | None:
    """Return the first candidate that is a non-blank string, stripped."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


class CallerIdentity(BaseModel):
    """Who is calling, as far as the request tells us.

    Either field may be absent; guest checkout carries neither.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str | None = Field(default=None, description="Caller's owner id")
    email: str | None = Field(default=None, description="Caller's email, lower-cased")

    @property
    def is_anonymous(self) -> bool:
        """True when the caller offers no identity at all."""
        return not (self.user_id or self.email)

    @classmethod
    def from_sources(cls, *sources: "CallerIdentity | None") -> "CallerIdentity":
        """Merge identity sources, earlier sources taking priority per field.

        Args:
            *sources: Identity sources in priority order; None entries are skipped.

        Returns:
            CallerIdentity: The combined identity.
        """
        present = [source for source in sources if source is not None]
        email = first_present(*(source.email for source in present))
        return cls(
            user_id=first_present(*(source.user_id for source in present)),
            email=email.lower() if email else None,
        )
