"""
Obras Core - Shared services for all modules.

Usage:
    from obras.core import get_api, get_config, get_logger, OBRAS_PATHS
"""

from obras.core.config import get_config, get_config_value, get_branding, OBRAS_PATHS
from obras.core.errors import BillingError, BudgetError, ValidationError
from obras.core.http import ApiClient, ApiError, UnauthorizedError, get_api, get_or_none, quote_id
from obras.core.logging import get_logger

__all__ = [
    "get_config",
    "get_config_value",
    "get_branding",
    "OBRAS_PATHS",
    "ApiClient",
    "ApiError",
    "UnauthorizedError",
    "get_api",
    "get_or_none",
    "quote_id",
    "ValidationError",
    "BillingError",
    "BudgetError",
    "get_logger",
]
