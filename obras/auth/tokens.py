"""
Bearer token acquisition for the company REST API.

Two modes, selected by ``auth.mode`` in config.yaml:

  - ``static``             token from OBRAS_API_TOKEN / ``auth.token``
  - ``client_credentials`` MSAL confidential client; MSAL's in-memory
                           cache hands back the cached token until it is
                           close to expiry, then renews it silently.

No Flask imports. The browser login/logout redirect flow is owned by the
identity provider and is not handled here.
"""

from __future__ import annotations

from typing import List, Optional

import msal

from obras.core.config import get_config_value
from obras.core.logging import get_logger

logger = get_logger("obras.auth.tokens")


class TokenProvider:
    """Base provider: never has a token (requests go out unauthenticated)."""

    def get_token(self) -> Optional[str]:
        return None

    def invalidate(self) -> None:
        """Forget any cached token so the next call acquires a fresh one."""


class StaticTokenProvider(TokenProvider):
    """Fixed bearer token, typically injected through the environment."""

    def __init__(self, token: Optional[str]):
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token


class ClientCredentialsTokenProvider(TokenProvider):
    """OAuth2 client-credentials grant through an MSAL confidential client."""

    def __init__(
        self,
        authority: str,
        client_id: str,
        client_secret: str,
        scopes: List[str],
    ):
        self.scopes = list(scopes)
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def get_token(self) -> Optional[str]:
        result = self._app.acquire_token_for_client(scopes=self.scopes)
        if "access_token" not in result:
            logger.error(
                "Token acquisition failed: %s (%s)",
                result.get("error"),
                result.get("error_description", ""),
            )
            return None

        logger.debug("Acquired access token (source: %s)", result.get("token_source", "?"))
        return result["access_token"]

    def invalidate(self) -> None:
        # MSAL would otherwise keep returning the rejected token
        cache = self._app.token_cache
        for item in cache.find(msal.TokenCache.CredentialType.ACCESS_TOKEN):
            cache.remove_at(item)


def token_provider_from_config() -> TokenProvider:
    """Build the provider described by the ``auth`` section of config.yaml."""
    mode = get_config_value("auth", "mode", default="static")

    if mode == "client_credentials":
        authority = get_config_value("auth", "authority", default="")
        client_id = get_config_value("auth", "client_id", default="")
        client_secret = get_config_value("auth", "client_secret", default="")
        scopes = get_config_value("auth", "scopes", default=[]) or []
        if not all([authority, client_id, client_secret]):
            raise ValueError(
                "Client credentials not configured. Add authority, client_id and "
                "client_secret to the 'auth' section of config.yaml"
            )
        return ClientCredentialsTokenProvider(authority, client_id, client_secret, scopes)

    if mode == "static":
        token = get_config_value("auth", "token", default="")
        if not token:
            logger.warning("No API token configured; requests will be unauthenticated")
        return StaticTokenProvider(token)

    raise ValueError(f"Unknown auth mode: {mode}")
