"""OIDC domain errors.

The presentation layer only ever sees the messages of the errors defined here. Failures
raised by the connection layer are mapped onto this closed set by `translate_error`, which
is total: categories it does not recognise become `GenericError`.
"""

from typing import Optional

from uz.efael.hub.matrix.connection import (
    AuthorizationCodeErrorKind,
    ConnectionBuildError,
    OAuthAuthorizationCodeError,
    OAuthDiscoveryError,
)


class OidcError(Exception):
    """Base class of the domain error taxonomy."""

    message = "An unknown OIDC error occurred."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash((type(self), str(self)))


class NotSupportedError(OidcError):
    message = "The homeserver doesn't provide an authentication issuer in its well-known configuration."


class MetadataInvalidError(OidcError):
    message = "Unable to use OIDC as the supplied client metadata is invalid."


class CallbackUrlInvalidError(OidcError):
    message = "The supplied callback URL used to complete OIDC is invalid."


class LoginCancelledError(OidcError):
    message = "The OIDC login was cancelled by the user."


class GenericError(OidcError):
    def __init__(self, message: str) -> None:
        super().__init__(f"An error occurred: {message}")
        self.detail = message


class SessionNotFoundError(OidcError):
    message = "missing client"


CALLBACK_ERROR_KINDS = frozenset(
    {AuthorizationCodeErrorKind.redirect_uri, AuthorizationCodeErrorKind.invalid_state}
)


def translate_error(error: Exception) -> OidcError:
    """
    Map a connection-layer failure onto the domain error taxonomy.

    Args:
        error: Any exception raised while talking to the homeserver

    Returns:
        OidcError: The matching domain error, `GenericError` for anything unrecognised
    """
    if isinstance(error, OidcError):
        return error

    if isinstance(error, OAuthDiscoveryError) and error.not_supported:
        return NotSupportedError()

    if isinstance(error, OAuthAuthorizationCodeError):
        if error.kind in CALLBACK_ERROR_KINDS:
            return CallbackUrlInvalidError()
        if error.kind == AuthorizationCodeErrorKind.cancelled:
            return LoginCancelledError()

    return GenericError(str(error))


def describe_failure(error: Exception) -> str:
    """Render a failure as the error string carried by a response message.

    Connection-build failures are surfaced verbatim; everything else is translated first.
    """
    if isinstance(error, ConnectionBuildError):
        return str(error)
    return str(translate_error(error))
