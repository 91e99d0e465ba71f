"""
Unit tests for login capability discovery in uz.efael.hub.matrix.homeserver
"""

import pytest

from uz.efael.hub.matrix.connection import (
    LoginType,
    OAuthDiscoveryError,
    OidcPrompt,
    ServerMetadata,
    SlidingSyncVersion,
)
from uz.efael.hub.matrix.homeserver import (
    discover_login_types,
    discover_oidc,
    homeserver_login_details,
)


class TestDiscoverOidc:
    """Test suite for discover_oidc."""

    async def test_supported(self, stub_connection):
        """Test advertised prompts are parsed into known values."""
        supported, prompts = await discover_oidc(stub_connection)

        assert supported is True
        assert prompts == [OidcPrompt.create, OidcPrompt.consent]

    async def test_unknown_prompt_kept_verbatim(self, stub_connection):
        """Test unrecognised prompt values survive as plain strings."""
        stub_connection.server_metadata_result = ServerMetadata(
            issuer="https://account.matrix.org/",
            prompt_values_supported=["login", "select_account"],
        )

        _, prompts = await discover_oidc(stub_connection)

        assert prompts == [OidcPrompt.login, "select_account"]

    async def test_failure_degrades(self, stub_connection):
        """Test a failed metadata fetch reports no OIDC support."""
        stub_connection.server_metadata_error = OAuthDiscoveryError(
            "no issuer", not_supported=True
        )

        assert await discover_oidc(stub_connection) == (False, [])


class TestDiscoverLoginTypes:
    """Test suite for discover_login_types."""

    async def test_failure_returns_none(self, stub_connection):
        stub_connection.login_types_error = RuntimeError("connection reset")

        assert await discover_login_types(stub_connection) is None


class TestHomeserverLoginDetails:
    """Test suite for homeserver_login_details."""

    async def test_matrix_org(self, stub_connection):
        """Test an OIDC-only homeserver with SSO and no password login."""
        details = await homeserver_login_details(stub_connection)

        assert details.url == "https://matrix.org"
        assert details.supports_oidc_login is True
        assert details.supports_sso_login is True
        assert details.supports_password_login is False
        assert details.sliding_sync_version == SlidingSyncVersion.native

    async def test_password_login(self, stub_connection):
        """Test password support is derived from the advertised flows."""
        stub_connection.login_types_result = [LoginType.password, LoginType.token]

        details = await homeserver_login_details(stub_connection)

        assert details.supports_password_login is True
        assert details.supports_sso_login is False

    @pytest.mark.parametrize("probe", ["server_metadata_error", "login_types_error"])
    async def test_probe_failure_does_not_abort(self, stub_connection, probe):
        """Test one failing probe leaves the other's result intact."""
        setattr(stub_connection, probe, RuntimeError("probe failed"))

        details = await homeserver_login_details(stub_connection)

        if probe == "server_metadata_error":
            assert details.supports_oidc_login is False
            assert details.supported_oidc_prompts == []
            assert details.supports_sso_login is True
        else:
            assert details.supports_oidc_login is True
            assert details.supports_sso_login is False
            assert details.supports_password_login is False

    async def test_all_probes_fail(self, stub_connection):
        """Test every capability degrades to its default."""
        stub_connection.server_metadata_error = RuntimeError("down")
        stub_connection.login_types_error = RuntimeError("down")
        stub_connection.sliding_sync_result = "unknown"

        details = await homeserver_login_details(stub_connection)

        assert details.url == "https://matrix.org"
        assert details.supports_oidc_login is False
        assert details.supports_sso_login is False
        assert details.supports_password_login is False
        assert details.sliding_sync_version == SlidingSyncVersion.none
