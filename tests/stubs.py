"""
Stub connection layer for hub tests.

StubConnection records every call it receives so tests can assert on the arguments the
flows pass to the connection layer. Behaviour is configured through plain attributes.
"""

import asyncio
from typing import Any, Dict, List, Optional

from uz.efael.hub.matrix.connection import (
    AuthorizationData,
    LoginType,
    ServerMetadata,
    SessionMeta,
    SessionTokens,
    SlidingSyncVersion,
)


class StubConnection:
    """In-memory HomeserverConnection with scripted results."""

    def __init__(self, homeserver: str = "https://matrix.org"):
        self._homeserver = homeserver

        self.server_metadata_result: Optional[ServerMetadata] = ServerMetadata(
            issuer="https://account.matrix.org/",
            prompt_values_supported=["create", "consent"],
        )
        self.server_metadata_error: Optional[Exception] = None
        self.login_types_result: List[LoginType] = [LoginType.sso]
        self.login_types_error: Optional[Exception] = None
        self.sliding_sync_result: SlidingSyncVersion = SlidingSyncVersion.native

        self.authorization_result = AuthorizationData(
            url="https://account.matrix.org/authorize?state=abc", state="abc"
        )
        self.authorization_error: Optional[Exception] = None
        self.authorization_gate: Optional[asyncio.Event] = None
        self.authorization_calls: List[Dict[str, Any]] = []

        self.finish_error: Optional[Exception] = None
        self.finish_gate: Optional[asyncio.Event] = None
        self.finish_calls: List[str] = []
        self.issued_meta: Optional[SessionMeta] = SessionMeta(
            user_id="@alice:matrix.org", device_id="DEVICEID"
        )
        self.issued_tokens: Optional[SessionTokens] = SessionTokens(
            access_token="access-token", refresh_token="refresh-token"
        )

        self._meta: Optional[SessionMeta] = None
        self._tokens: Optional[SessionTokens] = None

    @property
    def homeserver(self) -> str:
        return self._homeserver

    async def server_metadata(self) -> ServerMetadata:
        if self.server_metadata_error is not None:
            raise self.server_metadata_error
        return self.server_metadata_result

    async def login_types(self) -> List[LoginType]:
        if self.login_types_error is not None:
            raise self.login_types_error
        return self.login_types_result

    def sliding_sync_version(self) -> SlidingSyncVersion:
        return self.sliding_sync_result

    async def authorization_url(
        self,
        redirect_uri,
        registration_data,
        prompt,
        login_hint=None,
        device_id=None,
    ) -> AuthorizationData:
        self.authorization_calls.append(
            {
                "redirect_uri": redirect_uri,
                "registration_data": registration_data,
                "prompt": prompt,
                "login_hint": login_hint,
                "device_id": device_id,
            }
        )
        if self.authorization_gate is not None:
            await self.authorization_gate.wait()
        if self.authorization_error is not None:
            raise self.authorization_error
        return self.authorization_result

    async def finish_login(self, callback_url: str) -> None:
        self.finish_calls.append(callback_url)
        if self.finish_gate is not None:
            await self.finish_gate.wait()
        if self.finish_error is not None:
            raise self.finish_error
        self._meta = self.issued_meta
        self._tokens = self.issued_tokens

    def session_meta(self) -> Optional[SessionMeta]:
        return self._meta

    def session_tokens(self) -> Optional[SessionTokens]:
        return self._tokens


class StubConnectionFactory:
    """ConnectionFactory handing out StubConnections.

    Names listed in `errors` raise the mapped exception instead, names listed in `gates`
    wait for the mapped event first. `configure` is called with every new connection
    before it is returned.
    """

    def __init__(self, configure=None):
        self.configure = configure
        self.errors: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []
        self.connections: List[StubConnection] = []

    async def __call__(self, name_or_homeserver_url: str) -> StubConnection:
        self.calls.append(name_or_homeserver_url)
        if name_or_homeserver_url in self.gates:
            await self.gates[name_or_homeserver_url].wait()
        if name_or_homeserver_url in self.errors:
            raise self.errors[name_or_homeserver_url]

        homeserver = name_or_homeserver_url
        if "://" not in homeserver:
            homeserver = f"https://{homeserver}"

        connection = StubConnection(homeserver=homeserver)
        if self.configure is not None:
            self.configure(connection)
        self.connections.append(connection)
        return connection


class MockStatsdClient:
    """Metrics client recording what the flows report."""

    def __init__(self):
        self.gauges = {}
        self.increments = {}
        self.timers = {}
        self.connected = False
        self.closed = False

    def gauge(self, metric_name, value, tag_dict=None):
        self.gauges[metric_name] = {"value": value, "tags": tag_dict or {}}

    def increment(self, metric_name, value=1, tag_dict=None):
        self.increments[metric_name] = self.increments.get(metric_name, 0) + value

    def timer(self, metric_name, value, tag_dict=None):
        self.timers[metric_name] = {"value": value, "tags": tag_dict or {}}

    async def connect(self):
        self.connected = True

    async def close(self):
        self.closed = True
