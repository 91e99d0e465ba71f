"""Homeserver connection protocol.

Describes the capability the hub needs from a Matrix client implementation: building a
connection from a server name or URL, discovering login capabilities, constructing OAuth
authorization URLs, completing OAuth callbacks and reading back the resulting session.

The protocol is implemented by the embedding application. Failures are reported by raising
subclasses of `HomeserverError`, which `uz.efael.hub.matrix.errors` translates into the
hub's domain errors.
"""

from enum import Enum
from typing import (
    TYPE_CHECKING,
    List,
    Optional,
    Protocol,
)

from pydantic import BaseModel

if TYPE_CHECKING:
    from uz.efael.hub.matrix.oidc import RegistrationData


class SlidingSyncVersion(str, Enum):
    """Sliding sync flavour negotiated with the homeserver."""

    none = "none"
    native = "native"


class OidcPrompt(str, Enum):
    """Prompt values the hub knows how to ask the authorization server for.

    Servers may advertise other values; those are carried around as plain strings.
    """

    create = "create"
    """Ask the End-User to create an account."""

    login = "login"
    """Ask the End-User to reauthenticate."""

    consent = "consent"
    """Ask the End-User for consent before returning information to the client."""

    @classmethod
    def parse(cls, value: str):
        try:
            return cls(value)
        except ValueError:
            return value


class LoginType(str, Enum):
    """Login flows advertised by `GET /_matrix/client/v3/login`."""

    password = "m.login.password"
    sso = "m.login.sso"
    token = "m.login.token"
    application_service = "m.login.application_service"


class ServerMetadata(BaseModel):
    """The subset of the OAuth 2.0 authorization server metadata the hub reads."""

    issuer: str
    prompt_values_supported: List[str] = []


class AuthorizationData(BaseModel):
    """Result of asking the connection layer for an authorization URL."""

    url: str
    state: str


class SessionMeta(BaseModel):
    user_id: str
    device_id: str


class SessionTokens(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None


class HomeserverError(Exception):
    """Base class for every failure raised by the connection layer."""


class ConnectionBuildError(HomeserverError):
    """The server name or URL could not be resolved into a usable homeserver."""


class OAuthError(HomeserverError):
    """An OAuth 2.0 operation against the homeserver failed."""


class OAuthDiscoveryError(OAuthError):
    """Fetching the authorization server metadata failed.

    `not_supported` is set when the homeserver simply does not advertise an OAuth 2.0
    issuer, as opposed to a transport or parsing failure.
    """

    def __init__(self, message: str, not_supported: bool = False) -> None:
        super().__init__(message)
        self.not_supported = not_supported


class AuthorizationCodeErrorKind(str, Enum):
    redirect_uri = "redirect_uri"
    invalid_state = "invalid_state"
    cancelled = "cancelled"
    request_token = "request_token"
    other = "other"


class OAuthAuthorizationCodeError(OAuthError):
    """Completing the authorization-code grant failed."""

    def __init__(self, message: str, kind: AuthorizationCodeErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


class HomeserverConnection(Protocol):
    """A live connection to one homeserver, owned by exactly one session."""

    @property
    def homeserver(self) -> str:
        """Base URL of the resolved homeserver."""
        ...

    async def server_metadata(self) -> ServerMetadata:
        """Fetch the OAuth 2.0 authorization server metadata.

        Raises:
            OAuthDiscoveryError: If the metadata cannot be fetched or OAuth is unsupported
        """
        ...

    async def login_types(self) -> List[LoginType]:
        """Fetch the login flows supported by the homeserver."""
        ...

    def sliding_sync_version(self) -> SlidingSyncVersion: ...

    async def authorization_url(
        self,
        redirect_uri: str,
        registration_data: "RegistrationData",
        prompt: List[str],
        login_hint: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> AuthorizationData:
        """Register the client if needed and build an authorization URL.

        A fresh device id is generated by the connection layer when `device_id` is None.
        """
        ...

    async def finish_login(self, callback_url: str) -> None:
        """Exchange the authorization code carried by `callback_url` for tokens.

        Raises:
            OAuthAuthorizationCodeError: If the callback cannot be completed
        """
        ...

    def session_meta(self) -> Optional[SessionMeta]: ...

    def session_tokens(self) -> Optional[SessionTokens]: ...


class ConnectionFactory(Protocol):
    """Builds a connection from a homeserver name or URL.

    Raises:
        ConnectionBuildError: If the input is not a resolvable homeserver
    """

    async def __call__(self, name_or_homeserver_url: str) -> HomeserverConnection: ...
