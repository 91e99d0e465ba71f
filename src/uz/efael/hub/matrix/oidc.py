"""
OIDC Client Metadata and Login Operations

This module turns caller-supplied client information into the registration data a
homeserver's authorization server expects, and implements the two OIDC operations the
login flows perform against a `HomeserverConnection`:

1. `url_for_oidc`: validate the client metadata, then ask the connection layer for an
   authorization URL
2. `login_with_oidc_callback`: validate the callback URL, complete the authorization-code
   exchange and read back the session

Client metadata follows the OAuth 2.0 Dynamic Client Registration Protocol (RFC 7591).
Display fields are localized values with no translations; the registration payload renders
translations as `field#lang` keys.

Validation is all-or-nothing: one malformed URI invalidates the whole configuration.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AnyUrl, BaseModel, ConfigDict, TypeAdapter

from uz.efael.hub.matrix.connection import (
    AuthorizationData,
    HomeserverConnection,
    HomeserverError,
    SessionMeta,
    SessionTokens,
)
from uz.efael.hub.matrix.errors import (
    CallbackUrlInvalidError,
    LoginCancelledError,
    MetadataInvalidError,
    translate_error,
)

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)


def parse_url(value: str) -> str:
    """
    Parse an absolute URI and return its normalized form.

    Custom schemes such as `uz.efael.app:/` are accepted; relative references are not.

    Raises:
        ValueError: If the value is not a valid absolute URI
    """
    return str(_url_adapter.validate_python(value))


class ApplicationType(str, Enum):
    native = "native"
    web = "web"


class GrantType(str, Enum):
    authorization_code = "authorization_code"
    refresh_token = "refresh_token"
    device_code = "urn:ietf:params:oauth:grant-type:device_code"


class OAuthGrant(BaseModel):
    """A grant the client registers for, with the redirect URIs it needs."""

    model_config = ConfigDict(frozen=True)

    grant_type: GrantType
    redirect_uris: List[str] = []


class Localized(BaseModel):
    """A display value in the default locale, with optional per-language variants."""

    model_config = ConfigDict(frozen=True)

    value: str
    translations: Dict[str, str] = {}


class ClientMetadata(BaseModel):
    """
    OAuth 2.0 client metadata submitted for dynamic client registration.

    The authorization server shows the localized fields to the user when asking for
    consent.
    """

    model_config = ConfigDict(frozen=True)

    application_type: ApplicationType
    grants: List[OAuthGrant]
    client_uri: Localized
    client_name: Optional[Localized] = None
    logo_uri: Optional[Localized] = None
    policy_uri: Optional[Localized] = None
    tos_uri: Optional[Localized] = None

    def to_registration_payload(self) -> Dict[str, Any]:
        """Render the metadata as an RFC 7591 registration request body."""
        grant_types: List[str] = []
        redirect_uris: List[str] = []
        for grant in self.grants:
            if grant.grant_type == GrantType.authorization_code:
                grant_types.extend(
                    [GrantType.authorization_code.value, GrantType.refresh_token.value]
                )
                redirect_uris.extend(grant.redirect_uris)
            else:
                grant_types.append(grant.grant_type.value)

        payload: Dict[str, Any] = {
            "application_type": self.application_type.value,
            "grant_types": grant_types,
            "token_endpoint_auth_method": "none",
        }
        if redirect_uris:
            payload["redirect_uris"] = redirect_uris
            payload["response_types"] = ["code"]

        for field in ("client_name", "client_uri", "logo_uri", "policy_uri", "tos_uri"):
            localized: Optional[Localized] = getattr(self, field)
            if localized is None:
                continue
            payload[field] = localized.value
            for language, value in localized.translations.items():
                payload[f"{field}#{language}"] = value

        return payload


class RegistrationData(BaseModel):
    """Everything the connection layer needs to obtain a client id.

    `static_registrations` maps issuer URLs to pre-shared client ids for homeservers
    that do not allow dynamic registration.
    """

    model_config = ConfigDict(frozen=True)

    metadata: ClientMetadata
    static_registrations: Optional[Dict[str, str]] = None


def _localized_url(value: Optional[str]) -> Optional[Localized]:
    if value is None:
        return None
    try:
        return Localized(value=parse_url(value))
    except ValueError as e:
        raise MetadataInvalidError() from e


class OidcFlowConfig(BaseModel):
    """
    Client registration and display metadata for a single authorization attempt.

    Built fresh for every authorization URL request and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    client_name: Optional[str] = None
    """Name of the client shown during OIDC authentication."""

    redirect_uri: str
    """Where the authorization server sends the user once authentication succeeds."""

    client_uri: str
    """A URI with information about the client."""

    logo_uri: Optional[str] = None
    tos_uri: Optional[str] = None
    policy_uri: Optional[str] = None

    static_registrations: Dict[str, str] = {}
    """
    Pre-configured client ids keyed by homeserver URL. Issuer URLs are accepted too.
    """

    def validated_redirect_uri(self) -> str:
        """
        Parse the configured redirect URI.

        Raises:
            MetadataInvalidError: If the redirect URI is not a valid URI
        """
        try:
            return parse_url(self.redirect_uri)
        except ValueError as e:
            raise MetadataInvalidError() from e

    def client_metadata(self) -> ClientMetadata:
        """
        Build the metadata submitted for dynamic client registration.

        The redirect URI is registered for the authorization-code grant; the device-code
        grant is registered alongside it.

        Raises:
            MetadataInvalidError: If any configured URI is invalid
        """
        redirect_uri = self.validated_redirect_uri()
        client_uri = _localized_url(self.client_uri)
        logo_uri = _localized_url(self.logo_uri)
        policy_uri = _localized_url(self.policy_uri)
        tos_uri = _localized_url(self.tos_uri)

        client_name = None
        if self.client_name is not None:
            client_name = Localized(value=self.client_name)

        return ClientMetadata(
            application_type=ApplicationType.native,
            grants=[
                OAuthGrant(
                    grant_type=GrantType.authorization_code,
                    redirect_uris=[redirect_uri],
                ),
                OAuthGrant(grant_type=GrantType.device_code),
            ],
            client_uri=client_uri,
            client_name=client_name,
            logo_uri=logo_uri,
            policy_uri=policy_uri,
            tos_uri=tos_uri,
        )

    def registration_data(self) -> RegistrationData:
        """
        Wrap the client metadata together with any static registrations.

        Static registration keys that do not parse as URLs are logged and skipped.

        Raises:
            MetadataInvalidError: If the client metadata is invalid
        """
        metadata = self.client_metadata()

        if not self.static_registrations:
            return RegistrationData(metadata=metadata)

        static_registrations: Dict[str, str] = {}
        for issuer, client_id in self.static_registrations.items():
            try:
                issuer_url = parse_url(issuer)
            except ValueError:
                logger.error("Failed to parse static registration issuer %r", issuer)
                continue
            static_registrations[issuer_url] = client_id

        return RegistrationData(
            metadata=metadata, static_registrations=static_registrations
        )


async def url_for_oidc(
    connection: HomeserverConnection,
    oidc_configuration: OidcFlowConfig,
    prompt: Optional[str] = None,
    login_hint: Optional[str] = None,
    device_id: Optional[str] = None,
) -> AuthorizationData:
    """
    Request the URL the user should open to authenticate.

    The configuration is validated before the connection layer is contacted.

    Args:
        connection: Connection to the homeserver
        oidc_configuration: Client metadata used to register or look up the client
        prompt: Desired user experience, e.g. `consent` or `create`
        login_hint: Hint used by the identity provider to pre-fill the login form
        device_id: Device to associate with the session, generated when None

    Returns:
        AuthorizationData: The authorization URL and its state

    Raises:
        OidcError: Translated from any failure
    """
    registration_data = oidc_configuration.registration_data()
    redirect_uri = oidc_configuration.validated_redirect_uri()

    try:
        return await connection.authorization_url(
            redirect_uri,
            registration_data,
            prompt=[prompt] if prompt is not None else [],
            login_hint=login_hint,
            device_id=device_id,
        )
    except HomeserverError as e:
        raise translate_error(e) from e


async def login_with_oidc_callback(
    connection: HomeserverConnection, callback_url: str
) -> Tuple[SessionMeta, SessionTokens]:
    """
    Complete the OIDC login with the callback URL returned by the web view.

    A completed OAuth session always yields both its metadata and its tokens; if either
    is missing afterwards the login is treated as cancelled.

    Raises:
        CallbackUrlInvalidError: If the callback URL is malformed, before any network call
        OidcError: Translated from any connection-layer failure
    """
    try:
        parse_url(callback_url)
    except ValueError as e:
        raise CallbackUrlInvalidError() from e

    try:
        await connection.finish_login(callback_url)
    except HomeserverError as e:
        raise translate_error(e) from e

    meta = connection.session_meta()
    tokens = connection.session_tokens()
    if meta is None or tokens is None:
        raise LoginCancelledError()

    return meta, tokens
