import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .team import TeamMember
    from .vote import Vote


class UserRole(str, enum.Enum):
    admin = "admin"
    architect = "architect"
    associate_lead = "associate_lead"
    associate_senior = "associate_senior"
    associate = "associate"
    fresher = "fresher"


class Department(str, enum.Enum):
    development = "development"
    qa = "qa"
    hr = "hr"
    product = "product"
    design = "design"
    marketing = "marketing"
    sales = "sales"
    finance = "finance"
    security = "security"
    operations = "operations"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    api_key_hash: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Only ever changed through services.reputation.apply_delta (atomic increment)
    reputation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    role: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    votes: Mapped[list["Vote"]] = relationship("Vote", back_populates="voter", lazy="raise")
    memberships: Mapped[list["TeamMember"]] = relationship(
        "TeamMember", back_populates="user", lazy="raise"
    )
