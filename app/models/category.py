from enum import Enum as PyEnum
from typing import Union


class Category(str, PyEnum):
    """The three fixed budget categories.

    Values:
        LEISURE: Discretionary spending (outings, hobbies).
        ESSENTIALS: Rent, groceries, utilities, transport.
        SAVINGS: Money set aside for later.
    """
    LEISURE = "leisure"
    ESSENTIALS = "essentials"
    SAVINGS = "savings"

    @classmethod
    def parse(cls, value: Union[str, "Category", None]) -> "Category":
        """Case-insensitive lookup; raises ValueError for anything outside the enum."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Category is required.")
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise ValueError(f"Category must be one of: {allowed}.") from None

    @property
    def budget_field(self) -> str:
        return f"{self.value}_budget"

    @property
    def spent_field(self) -> str:
        return f"{self.value}_spent"
