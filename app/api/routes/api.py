from fastapi import APIRouter

from app.api.routes import budgets, expenses

api_router = APIRouter()

# Include the different routers
api_router.include_router(budgets.router, prefix="/budgets", tags=["budgets"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
