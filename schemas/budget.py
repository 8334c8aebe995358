from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, UUID4, condecimal

Money = condecimal(max_digits=12, decimal_places=2)


class BudgetCreate(BaseModel):
    user_id: UUID4
    total_income: Money
    leisure_budget: Money
    essentials_budget: Money
    savings_budget: Money


class BudgetUpdate(BaseModel):
    total_income: Optional[Money] = None
    leisure_budget: Optional[Money] = None
    essentials_budget: Optional[Money] = None
    savings_budget: Optional[Money] = None


class AddExpenseAmountRequest(BaseModel):
    category: str
    amount: Money


class CategoryBreakdown(BaseModel):
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: Decimal
    is_over_budget: bool
    alert_level: str


class BudgetResponse(BaseModel):
    budget_id: UUID4
    user_id: UUID4
    month: int
    year: int
    total_income: Decimal
    leisure_budget: Decimal
    essentials_budget: Decimal
    savings_budget: Decimal
    leisure_spent: Decimal
    essentials_spent: Decimal
    savings_spent: Decimal
    total_budget: Decimal
    total_spent: Decimal
    remaining_balance: Decimal
    is_budget_over_income: bool
    categories: Dict[str, CategoryBreakdown]
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BudgetListResponse(BaseModel):
    budgets: List[BudgetResponse]
    count: int


class AdjustmentType(str, Enum):
    REDUCTION = "reduction"
    SAVINGS_ADJUSTMENT = "savings_adjustment"
    BALANCED = "balanced"


class AdjustmentSuggestion(BaseModel):
    """Advisory values that would bring a budget back within its income.

    Nothing is applied; callers submit ``suggestions`` through a budget update.
    """
    type: AdjustmentType
    reason: str
    reduction_needed: Optional[Decimal] = None
    max_savings: Optional[Decimal] = None
    suggestions: Dict[str, Decimal] = {}


class BudgetVerdict(BaseModel):
    budget_id: UUID4
    valid: bool
    reason: Optional[str] = None


class BudgetDeleteResponse(BaseModel):
    status: str = "success"
    message: str = "Budget deleted successfully"
