"""Homeserver login capability discovery.

Asks a connection which login methods its homeserver offers. Every probe is allowed to
fail: a failed probe degrades to false/empty capability flags instead of aborting, since
partial information is still actionable by the caller.
"""

import asyncio
import logging
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel

from uz.efael.hub.matrix.connection import (
    HomeserverConnection,
    LoginType,
    OidcPrompt,
    SlidingSyncVersion,
)

logger = logging.getLogger(__name__)


class HomeserverLoginDetails(BaseModel):
    """Login capabilities of a homeserver.

    Contains the homeserver URL and which login methods it supports.
    """

    url: str
    sliding_sync_version: SlidingSyncVersion = SlidingSyncVersion.none
    supports_oidc_login: bool = False
    supported_oidc_prompts: List[Union[OidcPrompt, str]] = []
    supports_sso_login: bool = False
    supports_password_login: bool = False


async def discover_oidc(
    connection: HomeserverConnection,
) -> Tuple[bool, List[Union[OidcPrompt, str]]]:
    """Check OAuth 2.0 support and collect the advertised prompt values.

    Returns:
        (supports_oidc_login, supported_oidc_prompts), (False, []) on failure
    """
    try:
        metadata = await connection.server_metadata()
    except Exception as e:
        logger.warning("Failed to fetch OIDC provider metadata: %s", e)
        return False, []
    return True, [OidcPrompt.parse(value) for value in metadata.prompt_values_supported]


async def discover_login_types(
    connection: HomeserverConnection,
) -> Optional[List[LoginType]]:
    """Fetch the advertised login flows, None on failure."""
    try:
        return await connection.login_types()
    except Exception as e:
        logger.warning("Failed to fetch login types: %s", e)
        return None


def discover_sliding_sync_version(
    connection: HomeserverConnection,
) -> SlidingSyncVersion:
    try:
        return SlidingSyncVersion(connection.sliding_sync_version())
    except Exception as e:
        logger.warning("Failed to read sliding sync version: %s", e)
        return SlidingSyncVersion.none


async def homeserver_login_details(
    connection: HomeserverConnection,
) -> HomeserverLoginDetails:
    """
    Discover the login capabilities of the connection's homeserver.

    The OAuth metadata and login flow probes run concurrently. This never raises for a
    failed probe.

    Args:
        connection: Connection to the homeserver

    Returns:
        HomeserverLoginDetails: Capabilities, degraded to defaults where probes failed
    """
    async with asyncio.TaskGroup() as tg:
        oidc_result = tg.create_task(discover_oidc(connection))
        login_types_result = tg.create_task(discover_login_types(connection))

    supports_oidc_login, supported_oidc_prompts = oidc_result.result()
    login_types = login_types_result.result() or []

    return HomeserverLoginDetails(
        url=connection.homeserver,
        sliding_sync_version=discover_sliding_sync_version(connection),
        supports_oidc_login=supports_oidc_login,
        supported_oidc_prompts=supported_oidc_prompts,
        supports_sso_login=LoginType.sso in login_types,
        supports_password_login=LoginType.password in login_types,
    )
