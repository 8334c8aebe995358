from app.models.user import User, UserStatus
from app.models.category import Category
from app.models.budget import Budget
from app.models.expense import Expense
