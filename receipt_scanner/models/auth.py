"""
Authentication-related domain models.
"""

from dataclasses import dataclass
from typing import Any, Self

from receipt_scanner.exceptions import ReceiptScannerError


@dataclass(frozen=True, kw_only=True)
class DiscoveryDocument:
    """
    Identity provider metadata for one tenant.

    Attributes:
        tenant_id: Tenant the document was resolved for.
        issuer: Issuer identifier.
        authorization_endpoint: URL of the consent step.
        token_endpoint: URL of the code exchange.
        userinfo_endpoint: OIDC userinfo URL, if published.
        end_session_endpoint: Logout URL, if published.
    """

    tenant_id: str
    issuer: str | None
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None


@dataclass(frozen=True, kw_only=True)
class AuthorizationRequest:
    """
    One in-flight PKCE handshake.

    Consumed exactly once by the token exchange and never reused.

    Attributes:
        state: Anti-CSRF correlation value, unique per attempt.
        code_verifier: PKCE secret, only sent during the exchange.
        code_challenge: S256 challenge derived from the verifier.
        redirect_uri: Must match between consent and exchange.
        authorization_url: Fully built consent URL.
    """

    state: str
    code_verifier: str
    code_challenge: str
    redirect_uri: str
    authorization_url: str

    def __repr__(self) -> str:
        return f"AuthorizationRequest(state={self.state!r}, redirect_uri={self.redirect_uri!r})"


@dataclass(frozen=True, kw_only=True)
class AuthorizationCode:
    """Provider redirected back with an authorization code."""

    state: str
    code: str

    def __repr__(self) -> str:
        return f"AuthorizationCode(state={self.state!r})"


@dataclass(frozen=True, kw_only=True)
class AuthorizationCancelled:
    """User dismissed the consent step."""

    state: str


@dataclass(frozen=True, kw_only=True)
class AuthorizationFailed:
    """Provider redirected back with an OAuth error."""

    state: str
    error: str
    description: str | None = None


AuthorizationResult = AuthorizationCode | AuthorizationCancelled | AuthorizationFailed


@dataclass(frozen=True, kw_only=True)
class TokenResult:
    """Token endpoint response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str = ""

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> Self:
        expires_in = payload.get("expires_in")
        return cls(
            access_token=payload["access_token"],
            token_type=payload.get("token_type", "Bearer"),
            expires_in=int(expires_in) if expires_in is not None else None,
            refresh_token=payload.get("refresh_token"),
            id_token=payload.get("id_token"),
            scope=payload.get("scope", ""),
        )

    def __repr__(self) -> str:
        return f"TokenResult(token_type={self.token_type!r}, expires_in={self.expires_in!r})"


@dataclass(frozen=True, kw_only=True)
class UserProfile:
    """Profile summary; every field is independently optional."""

    display_name: str | None = None
    given_name: str | None = None
    surname: str | None = None

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> Self:
        return cls(
            display_name=_optional_str(payload.get("displayName")),
            given_name=_optional_str(payload.get("givenName")),
            surname=_optional_str(payload.get("surname")),
        )


@dataclass(frozen=True, kw_only=True)
class Session:
    """
    Authenticated identity of the current user.

    A session restored from the credential store carries the token only.

    Attributes:
        access_token: Opaque bearer credential.
        display_name: Full display name, if known.
        given_name: First name, if known.
        surname: Last name, if known.
    """

    access_token: str
    display_name: str | None = None
    given_name: str | None = None
    surname: str | None = None

    @classmethod
    def from_token(cls, access_token: str, profile: UserProfile | None = None) -> Self:
        if profile is None:
            return cls(access_token=access_token)
        return cls(
            access_token=access_token,
            display_name=profile.display_name,
            given_name=profile.given_name,
            surname=profile.surname,
        )

    @property
    def is_valid(self) -> bool:
        """A session without a token is no session."""
        return bool(self.access_token)

    @property
    def has_profile(self) -> bool:
        return any((self.display_name, self.given_name, self.surname))

    @property
    def display_label(self) -> str | None:
        """Best available name for the signed-in user."""
        if self.display_name:
            return self.display_name
        parts = [p for p in (self.given_name, self.surname) if p]
        return " ".join(parts) if parts else None

    def __repr__(self) -> str:
        return f"Session(display_name={self.display_name!r}, has_token={self.is_valid})"


# Session lifecycle states


@dataclass(frozen=True)
class Initializing:
    """Restoring the persisted credential."""


@dataclass(frozen=True, kw_only=True)
class Unauthenticated:
    """No session. ``error`` holds the failure of the last sign-in attempt."""

    error: ReceiptScannerError | None = None


@dataclass(frozen=True, kw_only=True)
class AuthorizationInFlight:
    """Sign-in running. ``request`` is set once the handshake is built."""

    request: AuthorizationRequest | None = None


@dataclass(frozen=True, kw_only=True)
class Authenticated:
    """Signed in."""

    session: Session


SessionState = Initializing | Unauthenticated | AuthorizationInFlight | Authenticated


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
