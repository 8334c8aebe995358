from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, UUID4

from app.models.category import Category
from schemas.budget import Money


class ExpenseCreate(BaseModel):
    user_id: UUID4
    budget_id: UUID4
    category: str
    amount: Money
    description: str
    payment_method: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    expense_date: Optional[datetime] = None


class ExpenseUpdate(BaseModel):
    category: Optional[str] = None
    amount: Optional[Money] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    expense_date: Optional[datetime] = None


class ExpenseResponse(BaseModel):
    expense_id: UUID4
    user_id: UUID4
    budget_id: UUID4
    category: Category
    amount: Decimal
    description: str
    payment_method: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    expense_date: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    expenses: List[ExpenseResponse]
    count: int


class ExpenseSummary(BaseModel):
    user_id: UUID4
    categories: Dict[str, Decimal]
    total_expenses: Decimal
    expense_count: int
    average_expense: Decimal


class CategoryTotalResponse(BaseModel):
    budget_id: UUID4
    category: Category
    total: Decimal


class ExpenseDeleteResponse(BaseModel):
    status: str = "success"
    message: str = "Expense deleted successfully"
