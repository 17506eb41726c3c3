"""
Business-rule exceptions shared by the domain modules.

Transport failures are ApiError (see obras.core.http); everything raised
here is a ValueError so callers that only care about "bad input" can catch
that.
"""

from typing import List, Optional


class ValidationError(ValueError):
    """Form data failed validation. ``errors`` lists one message per field."""

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(self.errors))


class BillingError(ValueError):
    """Milestone or billing-plan rule violated."""


class BudgetError(ValueError):
    """Budget rule violated."""
