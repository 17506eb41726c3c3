"""
Obras Auth Module

Bearer token providers used by the REST API client.
"""

from obras.auth.tokens import (
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    token_provider_from_config,
)

__all__ = [
    "ClientCredentialsTokenProvider",
    "StaticTokenProvider",
    "TokenProvider",
    "token_provider_from_config",
]
