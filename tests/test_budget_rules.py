import uuid
from decimal import Decimal

import pytest

from app.models.budget import Budget, budget_consistency_error, spent_percentage
from app.models.category import Category
from app.models.expense import expense_validation_error
from app.services.alerts import AlertLevel, classify_percentage, crossed_alert
from app.services.budget_engine import compute_auto_adjustment
from schemas.budget import AdjustmentType


def make_budget(income, leisure, essentials, savings, /, **spent):
    return Budget(
        budget_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        total_income=Decimal(income),
        leisure_budget=Decimal(leisure),
        essentials_budget=Decimal(essentials),
        savings_budget=Decimal(savings),
        leisure_spent=Decimal(spent.get("leisure", "0")),
        essentials_spent=Decimal(spent.get("essentials", "0")),
        savings_spent=Decimal(spent.get("savings", "0")),
    )


def test_allocation_using_whole_income_is_admissible():
    assert budget_consistency_error(Decimal("2000"), Decimal("300"), Decimal("1200"), Decimal("500")) is None


def test_allocation_over_income_is_rejected():
    error = budget_consistency_error(Decimal("2000"), Decimal("300"), Decimal("1200"), Decimal("600"))
    assert error == "Total budget (2100) exceeds total income (2000)."


@pytest.mark.parametrize(
    "income, leisure, essentials, savings, expected",
    [
        ("0", "0", "0", "0", "Total income must be greater than 0."),
        ("-10", "0", "0", "0", "Total income must be greater than 0."),
        ("100", "-1", "0", "0", "Leisure budget must be zero or positive."),
        ("100", "0", "-1", "0", "Essentials budget must be zero or positive."),
        ("100", "0", "0", "-0.01", "Savings budget must be zero or positive."),
    ],
)
def test_sign_rules(income, leisure, essentials, savings, expected):
    assert budget_consistency_error(
        Decimal(income), Decimal(leisure), Decimal(essentials), Decimal(savings)
    ) == expected


def test_missing_income_is_rejected():
    assert budget_consistency_error(None, Decimal("0"), Decimal("0"), Decimal("0")) == (
        "Total income must be greater than 0."
    )


def test_savings_may_use_all_income_left_after_essentials():
    error = budget_consistency_error(Decimal("1000"), Decimal("0"), Decimal("700"), Decimal("300"))
    assert error is None


def test_spent_percentage_rounding():
    assert spent_percentage(Decimal("150"), Decimal("300")) == Decimal("50.00")
    assert spent_percentage(Decimal("100"), Decimal("300")) == Decimal("33.33")
    assert spent_percentage(Decimal("200"), Decimal("300")) == Decimal("66.67")
    assert spent_percentage(Decimal("450"), Decimal("300")) == Decimal("150.00")


def test_spent_percentage_of_zero_budget_is_zero():
    assert spent_percentage(Decimal("25"), Decimal("0")) == Decimal("0.00")


def test_derived_figures():
    budget = make_budget("2000", "300", "1200", "500", leisure="150", essentials="1250")

    assert budget.remaining(Category.LEISURE) == Decimal("150")
    assert budget.spent_percentage(Category.LEISURE) == Decimal("50.00")
    assert budget.is_over_budget(Category.ESSENTIALS) is True
    assert budget.is_over_budget(Category.SAVINGS) is False
    assert budget.total_budget == Decimal("2000")
    assert budget.total_spent == Decimal("1400")
    assert budget.remaining_balance == Decimal("600")
    assert budget.is_budget_over_income is False


def test_spending_exactly_the_budget_is_not_over_budget():
    budget = make_budget("2000", "300", "1200", "500")
    budget.apply_expense(Category.LEISURE, Decimal("300"))

    assert budget.spent_percentage(Category.LEISURE) == Decimal("100.00")
    assert budget.is_over_budget(Category.LEISURE) is False

    budget.apply_expense(Category.LEISURE, Decimal("0.01"))
    assert budget.is_over_budget(Category.LEISURE) is True


def test_apply_expense_moves_spent_and_remaining_by_the_amount():
    budget = make_budget("2000", "300", "1200", "500", essentials="100")
    budget.apply_expense(Category.ESSENTIALS, Decimal("42.50"))

    assert budget.spent_for(Category.ESSENTIALS) == Decimal("142.50")
    assert budget.remaining(Category.ESSENTIALS) == Decimal("1057.50")


def test_adjustment_of_balanced_budget():
    suggestion = compute_auto_adjustment(make_budget("2000", "300", "1200", "500"))

    assert suggestion.type == AdjustmentType.BALANCED
    assert suggestion.suggestions == {}
    assert suggestion.reduction_needed is None


def test_adjustment_reduces_categories_proportionally():
    suggestion = compute_auto_adjustment(make_budget("2000", "500", "1200", "600"))

    assert suggestion.type == AdjustmentType.REDUCTION
    assert suggestion.reduction_needed == Decimal("300")
    assert suggestion.suggestions == {
        "leisure": Decimal("434.78"),
        "essentials": Decimal("1043.49"),
        "savings": Decimal("521.73"),
    }
    assert sum(suggestion.suggestions.values()) == Decimal("2000.00")


def test_adjustment_caps_savings_to_income_after_essentials():
    suggestion = compute_auto_adjustment(make_budget("2000", "-200", "1500", "600"))

    assert suggestion.type == AdjustmentType.SAVINGS_ADJUSTMENT
    assert suggestion.max_savings == Decimal("500")
    assert suggestion.suggestions == {"savings": Decimal("500")}


def test_adjustment_does_not_modify_budget():
    budget = make_budget("2000", "500", "1200", "600")
    compute_auto_adjustment(budget)

    assert budget.leisure_budget == Decimal("500")
    assert budget.essentials_budget == Decimal("1200")
    assert budget.savings_budget == Decimal("600")


@pytest.mark.parametrize(
    "percentage, level",
    [
        ("0", AlertLevel.NONE),
        ("74.99", AlertLevel.NONE),
        ("75", AlertLevel.WARNING),
        ("89.99", AlertLevel.WARNING),
        ("90", AlertLevel.CRITICAL),
        ("100", AlertLevel.OVER_BUDGET),
        ("150", AlertLevel.OVER_BUDGET),
    ],
)
def test_alert_bands(percentage, level):
    assert classify_percentage(Decimal(percentage)) == level


def test_alert_bands_with_custom_thresholds():
    assert classify_percentage(Decimal("60"), (50, 80, 100)) == AlertLevel.WARNING


def test_crossed_alert_only_reports_higher_bands():
    assert crossed_alert(Decimal("50"), Decimal("80")) == AlertLevel.WARNING
    assert crossed_alert(Decimal("80"), Decimal("85")) is None
    assert crossed_alert(Decimal("80"), Decimal("100")) == AlertLevel.OVER_BUDGET
    assert crossed_alert(Decimal("100"), Decimal("120")) is None


def test_category_parse():
    assert Category.parse(" Leisure ") is Category.LEISURE
    assert Category.parse("ESSENTIALS") is Category.ESSENTIALS
    assert Category.parse(Category.SAVINGS) is Category.SAVINGS

    with pytest.raises(ValueError, match="Category must be one of"):
        Category.parse("food")
    with pytest.raises(ValueError, match="Category is required"):
        Category.parse(None)


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"user_id": None}, "User id is required."),
        ({"budget_id": None}, "Budget id is required."),
        ({"category": "travel"}, "Category must be one of: leisure, essentials, savings."),
        ({"amount": Decimal("0")}, "Amount must be greater than 0."),
        ({"amount": None}, "Amount must be greater than 0."),
        ({"description": "   "}, "Description is required."),
        ({"description": "ab"}, "Description must contain at least 3 characters."),
        ({}, None),
    ],
)
def test_expense_validation(overrides, expected):
    fields = {
        "user_id": uuid.uuid4(),
        "budget_id": uuid.uuid4(),
        "category": "leisure",
        "amount": Decimal("10"),
        "description": "Cinema",
    }
    fields.update(overrides)
    assert expense_validation_error(**fields) == expected
