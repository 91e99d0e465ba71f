"""
Configuration Module for the Login Hub

This module defines the configuration of the hub using Pydantic settings. Values are read
from environment variables with defaults suitable for development.

Key configuration areas include:
- Debugging and logging
- Error reporting
- Pre-registered OIDC clients for homeservers without dynamic registration
- Metrics collection
- Message channel sizing

Shared runtime handles are bundled in `HubContext` and handed to each flow task
explicitly at startup; nothing is kept as module-level state.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from uz.efael.hub.app.metrics import MetricsClient
from uz.efael.hub.matrix.connection import ConnectionFactory
from uz.efael.hub.model.session import SessionRegistry


class Settings(BaseSettings):
    """
    Application settings for the login hub.

    Environment variables are mapped to fields by name, e.g. `SENTRY_DSN` sets
    `sentry_dsn`.
    """

    debug: bool = False
    """
    Enable debug logging.
    Set with DEBUG=true environment variable.
    """

    logging_config_file: str = ""
    """
    Path to a JSON logging configuration passed to `logging.config.dictConfig`.
    Set with LOGGING_CONFIG_FILE environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    static_registrations: Dict[str, str] = {}
    """
    Pre-shared OIDC client ids keyed by homeserver or issuer URL, for homeservers that
    forbid dynamic client registration.
    Set with STATIC_REGISTRATIONS environment variable as a JSON object.
    """

    metrics_backend: str = "none"
    """
    Metrics backend, either 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = "localhost"
    """
    StatsD/Telegraf host for metrics collection.
    Set with STATSD_HOST environment variable.
    """

    statsd_port: int = 8125
    """
    StatsD/Telegraf port for metrics collection.
    Set with STATSD_PORT environment variable.
    """

    statsd_prefix: str = "hub"
    """
    Prefix for all StatsD metrics from the hub.
    Set with STATSD_PREFIX environment variable.
    """

    channel_max_size: int = 0
    """
    Capacity of each flow's inbound and outbound queue, 0 for unbounded.
    Set with CHANNEL_MAX_SIZE environment variable.
    """

    @field_validator("metrics_backend")
    @classmethod
    def validate_metrics_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("telegraf", "none"):
            raise ValueError("metrics_backend must be 'telegraf' or 'none'")
        return v

    @field_validator("channel_max_size")
    @classmethod
    def validate_channel_max_size(cls, v: int) -> int:
        if v < 0:
            raise ValueError("channel_max_size must not be negative")
        return v


# Flow names, used in task names and metric names
CREATE_CONNECTION_FLOW = "create_connection"
GET_OIDC_URL_FLOW = "get_oidc_url"
FINISH_OIDC_LOGIN_FLOW = "finish_oidc_login"


@dataclass
class FlowChannel:
    """Inbound and outbound queues of one flow. The flow task is the only producer."""

    inbound: asyncio.Queue
    outbound: asyncio.Queue

    @classmethod
    def create(cls, max_size: int = 0) -> "FlowChannel":
        return cls(inbound=asyncio.Queue(max_size), outbound=asyncio.Queue(max_size))


@dataclass
class HubContext:
    """Shared handles every flow task receives at startup."""

    settings: Settings
    registry: SessionRegistry
    connection_factory: ConnectionFactory
    metrics_client: MetricsClient
