import asyncio
import logging
from typing import List, Optional

import sentry_sdk
from pydantic import BaseModel
from sentry_sdk.integrations.asyncio import AsyncioIntegration

from uz.efael.hub.app.config import (
    CREATE_CONNECTION_FLOW,
    FINISH_OIDC_LOGIN_FLOW,
    GET_OIDC_URL_FLOW,
    FlowChannel,
    HubContext,
    Settings,
)
from uz.efael.hub.app.metrics import MetricsClient, create_metrics_client
from uz.efael.hub.app.tasks import (
    create_connection_task,
    finish_oidc_login_task,
    get_oidc_url_task,
)
from uz.efael.hub.matrix.connection import ConnectionFactory
from uz.efael.hub.messages import CreateConnection, FinishOidcLogin, RequestOidcUrl
from uz.efael.hub.model.session import SessionRegistry

logger = logging.getLogger(__name__)


class LoginHub:
    """
    Owns the session registry, the per-flow channels and the flow tasks.

    The presentation layer puts requests on the inbound queues (or uses `send`) and reads
    responses from the outbound queue of the matching flow.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        settings: Optional[Settings] = None,
        metrics_client: Optional[MetricsClient] = None,
        registry: Optional[SessionRegistry] = None,
    ) -> None:
        if settings is None:
            settings = Settings()
        if metrics_client is None:
            metrics_client = create_metrics_client(
                settings.metrics_backend,
                host=settings.statsd_host,
                port=settings.statsd_port,
                debug=settings.debug,
            )

        self.context = HubContext(
            settings=settings,
            registry=registry if registry is not None else SessionRegistry(),
            connection_factory=connection_factory,
            metrics_client=metrics_client,
        )
        self.create_connection = FlowChannel.create(settings.channel_max_size)
        self.get_oidc_url = FlowChannel.create(settings.channel_max_size)
        self.finish_oidc_login = FlowChannel.create(settings.channel_max_size)
        self._tasks: List[asyncio.Task] = []

    @property
    def registry(self) -> SessionRegistry:
        return self.context.registry

    @property
    def running(self) -> bool:
        return len(self._tasks) > 0

    async def start(self) -> None:
        if self.running:
            raise RuntimeError("Login hub is already running")

        await self.context.metrics_client.connect()

        self._tasks = [
            asyncio.create_task(
                create_connection_task(self.context, self.create_connection),
                name=CREATE_CONNECTION_FLOW,
            ),
            asyncio.create_task(
                get_oidc_url_task(self.context, self.get_oidc_url),
                name=GET_OIDC_URL_FLOW,
            ),
            asyncio.create_task(
                finish_oidc_login_task(self.context, self.finish_oidc_login),
                name=FINISH_OIDC_LOGIN_FLOW,
            ),
        ]
        logger.info("Login hub started")

    async def stop(self) -> None:
        logger.info("Shutting down login hub")

        for task in self._tasks:
            task.cancel()

        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Flow task %s failed", task.get_name())

        self._tasks = []
        await self.context.metrics_client.close()

    async def send(self, request: BaseModel) -> None:
        """Route a request to the inbound queue of its flow."""
        if isinstance(request, CreateConnection):
            await self.create_connection.inbound.put(request)
        elif isinstance(request, RequestOidcUrl):
            await self.get_oidc_url.inbound.put(request)
        elif isinstance(request, FinishOidcLogin):
            await self.finish_oidc_login.inbound.put(request)
        else:
            raise TypeError(f"Unsupported request type: {type(request).__name__}")

    async def __aenter__(self) -> "LoginHub":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()


async def start_hub(
    connection_factory: ConnectionFactory, settings: Optional[Settings] = None
) -> LoginHub:
    """Initialize error reporting and start a hub with the three flow tasks running."""
    if settings is None:
        settings = Settings()
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[AsyncioIntegration()],
        )

    hub = LoginHub(connection_factory, settings=settings)
    await hub.start()
    return hub
