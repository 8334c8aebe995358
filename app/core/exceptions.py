"""Business-rule failures raised by the budget and expense engines.

Every error carries a stable ``error_code`` and the HTTP status the API layer
answers with, so routes never have to translate them one by one.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import status


class BudgetEngineError(Exception):
    error_code: str = "budget_engine_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(BudgetEngineError):
    """Input violates a budget or expense invariant."""
    error_code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(BudgetEngineError):
    error_code = "resource_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateBudget(BudgetEngineError):
    """A budget already exists for the user and month; update it instead."""
    error_code = "duplicate_budget"
    status_code = status.HTTP_409_CONFLICT


class NoActiveBudget(BudgetEngineError):
    error_code = "no_active_budget"
    status_code = status.HTTP_404_NOT_FOUND


class BudgetMismatch(BudgetEngineError):
    error_code = "budget_mismatch"
    status_code = status.HTTP_400_BAD_REQUEST


class OverspendRejected(BudgetEngineError):
    error_code = "overspend_rejected"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, category: str, overage: Decimal):
        super().__init__(message, details={"category": category, "overage": str(overage)})
        self.category = category
        self.overage = overage


class ConcurrentModification(BudgetEngineError):
    """The budget row changed between read and write."""
    error_code = "concurrent_modification"
    status_code = status.HTTP_409_CONFLICT


class PartialApplyFailure(BudgetEngineError):
    """The expense insert and the budget increment did not both complete.

    The storage transaction is rolled back before this is raised, so neither
    write is visible; the caller may retry the whole request.
    """
    error_code = "partial_apply_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
