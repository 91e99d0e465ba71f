"""
Presentation Layer Messages

Requests consumed from, and responses sent to, the presentation layer. There is one
request/response pair per login flow:

- CreateConnection -> ConnectionCreated
- RequestOidcUrl -> OidcUrlResponse
- FinishOidcLogin -> OidcLoginResponse

Session ids are opaque strings the presentation layer echoes back verbatim. Responses use
empty strings as the "no value" sentinel: on error every credential field is empty and
`error` carries the message; on success `error` is empty.
"""

from typing import Dict, List

from pydantic import BaseModel


class CreateConnection(BaseModel):
    homeserver_or_url: str


class ConnectionCreated(BaseModel):
    session_id: str = ""
    supports_oidc_login: bool = False
    supports_password_login: bool = False
    supports_sso_login: bool = False
    supported_oidc_prompts: List[str] = []
    sliding_sync_version: str = "none"
    homeserver_url: str = ""
    error: str = ""


class RequestOidcUrl(BaseModel):
    session_id: str
    homeserver_or_url: str
    client_name: str
    redirect_uri: str
    client_uri: str
    logo_uri: str = ""
    tos_uri: str = ""
    policy_uri: str = ""
    static_registrations: Dict[str, str] = {}


class OidcUrlResponse(BaseModel):
    session_id: str
    url: str = ""
    error: str = ""


class FinishOidcLogin(BaseModel):
    session_id: str
    callback_url: str


class OidcLoginResponse(BaseModel):
    session_id: str
    device_id: str = ""
    user_id: str = ""
    access_token: str = ""
    refresh_token: str = ""
    error: str = ""
