"""
Login Flow Tasks

Each login flow is a request/response pair served by one long-lived task:

- create_connection_task: CreateConnection -> ConnectionCreated
- get_oidc_url_task: RequestOidcUrl -> OidcUrlResponse
- finish_oidc_login_task: FinishOidcLogin -> OidcLoginResponse

A task pulls requests from its inbound queue forever and emits exactly one response per
request on its outbound queue. The session registry lock is only held around map
operations, never across a call into the connection layer.

There is no ordering between flows. For the same session id the caller sequences the
requests, finishing a login only after the URL response has been received.
"""

import logging
from time import time
from typing import Awaitable, Callable, NoReturn, Optional, Type

import sentry_sdk
from pydantic import BaseModel

from uz.efael.hub.app.config import (
    CREATE_CONNECTION_FLOW,
    FINISH_OIDC_LOGIN_FLOW,
    GET_OIDC_URL_FLOW,
    FlowChannel,
    HubContext,
    Settings,
)
from uz.efael.hub.matrix.connection import (
    HomeserverConnection,
    HomeserverError,
    OidcPrompt,
)
from uz.efael.hub.matrix.errors import OidcError, SessionNotFoundError, describe_failure
from uz.efael.hub.matrix.homeserver import homeserver_login_details
from uz.efael.hub.matrix.oidc import (
    OidcFlowConfig,
    login_with_oidc_callback,
    url_for_oidc,
)
from uz.efael.hub.messages import (
    ConnectionCreated,
    CreateConnection,
    FinishOidcLogin,
    OidcLoginResponse,
    OidcUrlResponse,
    RequestOidcUrl,
)
from uz.efael.hub.model.session import SessionState

logger = logging.getLogger(__name__)


def _optional(value: str) -> Optional[str]:
    return value if len(value) > 0 else None


async def create_connection(
    context: HubContext, request: CreateConnection
) -> ConnectionCreated:
    """
    Build a connection, discover its login capabilities and register a session.

    Discovery failures degrade the capability flags. A connection-build failure is
    answered with an error response and no session.
    """
    try:
        connection = await context.connection_factory(request.homeserver_or_url)
    except HomeserverError as e:
        logger.error(
            "Unable to build connection for %r: %s", request.homeserver_or_url, e
        )
        return ConnectionCreated(error=describe_failure(e))

    details = await homeserver_login_details(connection)
    session = await context.registry.insert(connection, SessionState.created)
    logger.info("Session %s created for %s", session.id, details.url)

    return ConnectionCreated(
        session_id=session.id,
        supports_oidc_login=details.supports_oidc_login,
        supports_password_login=details.supports_password_login,
        supports_sso_login=details.supports_sso_login,
        supported_oidc_prompts=[
            prompt.value if isinstance(prompt, OidcPrompt) else prompt
            for prompt in details.supported_oidc_prompts
        ],
        sliding_sync_version=details.sliding_sync_version.value,
        homeserver_url=details.url,
    )


def oidc_flow_config(settings: Settings, request: RequestOidcUrl) -> OidcFlowConfig:
    """Build the flow configuration for a URL request.

    Empty optional fields count as not supplied. Static registrations from the request
    take precedence over configured ones.
    """
    return OidcFlowConfig(
        client_name=_optional(request.client_name),
        redirect_uri=request.redirect_uri,
        client_uri=request.client_uri,
        logo_uri=_optional(request.logo_uri),
        tos_uri=_optional(request.tos_uri),
        policy_uri=_optional(request.policy_uri),
        static_registrations={
            **settings.static_registrations,
            **request.static_registrations,
        },
    )


async def get_oidc_url(context: HubContext, request: RequestOidcUrl) -> OidcUrlResponse:
    """
    Start a fresh authorization attempt and return the URL the user should open.

    Any previous session under the same id is discarded first and is not restored if
    this attempt fails. Consent is always requested because the URL is used for
    first-time registration links.
    """
    previous = await context.registry.remove(request.session_id)
    if previous is not None:
        logger.debug("Discarded previous session %s", request.session_id)

    try:
        connection = await context.connection_factory(request.homeserver_or_url)
        authorization_data = await url_for_oidc(
            connection,
            oidc_flow_config(context.settings, request),
            prompt=OidcPrompt.consent.value,
            login_hint=None,
            device_id=None,
        )
    except (HomeserverError, OidcError) as e:
        logger.info("Unable to get OIDC url for %s: %s", request.session_id, e)
        return OidcUrlResponse(session_id=request.session_id, error=describe_failure(e))

    await context.registry.replace(
        request.session_id, connection, SessionState.authorization_requested
    )
    logger.debug("OIDC url issued for %s", request.session_id)

    return OidcUrlResponse(session_id=request.session_id, url=authorization_data.url)


async def finish_oidc_login(
    context: HubContext, request: FinishOidcLogin
) -> OidcLoginResponse:
    """
    Complete the login for a session with the callback URL from the web view.

    On failure the session stays in place so the caller can submit another callback.
    """
    connection: Optional[HomeserverConnection] = None
    async with context.registry.get_mut(request.session_id) as session:
        if session is not None:
            connection = session.connection

    if connection is None:
        logger.warning("No session with id %s was found", request.session_id)
        return OidcLoginResponse(
            session_id=request.session_id, error=str(SessionNotFoundError())
        )

    try:
        meta, tokens = await login_with_oidc_callback(connection, request.callback_url)
    except OidcError as e:
        logger.info("Unable to finish OIDC login for %s: %s", request.session_id, e)
        return OidcLoginResponse(session_id=request.session_id, error=str(e))

    async with context.registry.get_mut(request.session_id) as session:
        if session is not None and session.connection is connection:
            session.state = SessionState.authorized

    logger.info("Session %s authorized as %s", request.session_id, meta.user_id)

    return OidcLoginResponse(
        session_id=request.session_id,
        device_id=meta.device_id,
        user_id=meta.user_id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token or "",
    )


async def serve_flow(
    context: HubContext,
    flow: str,
    channel: FlowChannel,
    request_type: Type[BaseModel],
    handler: Callable[[HubContext, BaseModel], Awaitable[BaseModel]],
    on_failure: Callable[[BaseModel, str], BaseModel],
) -> NoReturn:
    """
    Serve one flow forever, answering every request exactly once.

    Requests of the wrong type and unexpected exceptions are reported and answered with
    `on_failure`. After every request the number of live sessions is recorded.
    """
    logger.info("Starting %s task", flow)

    metrics_client = context.metrics_client
    metric_prefix = f"{context.settings.statsd_prefix}.flow.{flow}"

    while True:
        request = await channel.inbound.get()
        start_time = time()

        try:
            if not isinstance(request, request_type):
                logger.error(
                    "Rejected %s request of type %s", flow, type(request).__name__
                )
                metrics_client.increment(f"{metric_prefix}.rejected", 1)
                response = on_failure(
                    request, f"Unsupported request type: {type(request).__name__}"
                )
            else:
                response = await handler(context, request)
        except Exception as e:
            sentry_sdk.capture_exception(e)
            logger.exception("Error processing %s request", flow)
            metrics_client.increment(
                f"{metric_prefix}.exception",
                1,
                tag_dict={"exception": type(e).__name__},
            )
            response = on_failure(request, describe_failure(e))
        finally:
            metrics_client.timer(f"{metric_prefix}.time", time() - start_time)
            metrics_client.increment(f"{metric_prefix}.count", 1)

        if getattr(response, "error", ""):
            metrics_client.increment(f"{metric_prefix}.error", 1)

        metrics_client.gauge(
            f"{context.settings.statsd_prefix}.sessions",
            await context.registry.count(),
        )

        await channel.outbound.put(response)
        channel.inbound.task_done()


def _session_id(request: BaseModel) -> str:
    return getattr(request, "session_id", "")


async def create_connection_task(context: HubContext, channel: FlowChannel) -> NoReturn:
    await serve_flow(
        context,
        CREATE_CONNECTION_FLOW,
        channel,
        CreateConnection,
        create_connection,
        lambda request, error: ConnectionCreated(error=error),
    )


async def get_oidc_url_task(context: HubContext, channel: FlowChannel) -> NoReturn:
    await serve_flow(
        context,
        GET_OIDC_URL_FLOW,
        channel,
        RequestOidcUrl,
        get_oidc_url,
        lambda request, error: OidcUrlResponse(
            session_id=_session_id(request), error=error
        ),
    )


async def finish_oidc_login_task(context: HubContext, channel: FlowChannel) -> NoReturn:
    await serve_flow(
        context,
        FINISH_OIDC_LOGIN_FLOW,
        channel,
        FinishOidcLogin,
        finish_oidc_login,
        lambda request, error: OidcLoginResponse(
            session_id=_session_id(request), error=error
        ),
    )
