from schemas.budget import (
    BudgetCreate, BudgetUpdate, BudgetResponse, BudgetListResponse,
    BudgetDeleteResponse, AddExpenseAmountRequest, CategoryBreakdown,
    AdjustmentType, AdjustmentSuggestion, BudgetVerdict
)
from schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseListResponse,
    ExpenseSummary, CategoryTotalResponse, ExpenseDeleteResponse
)
