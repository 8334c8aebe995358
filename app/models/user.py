import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, String, Uuid

from app.core.db import Base


class UserStatus(str, PyEnum):
    """Enum for user status.

    Values:
        ACTIVE: User can own budgets and log expenses.
        INACTIVE: User account is inactive.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    """Model for budget owners.

    Registration and credentials live outside this service; the row only
    anchors budgets and expenses to an owner.

    Columns:
        user_id (UUID): Unique identifier for the user.
        email (str): User's email address (unique).
        full_name (str): Full name of the user.
        status (UserStatus): Current status of the user.
        created_at (datetime): Timestamp when the user was created.
    """
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, name="user_id")
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
