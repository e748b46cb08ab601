"""
User directory records.

Accounts are provisioned upstream; this service reads them to resolve the
requester and edits only the team assignment (``assigned_to_leader_id``).
"""
import enum

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from .base import BaseModel


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"
    SALES = "Sales"
    PRODUCTION = "Production"
    INSTALLATION = "Installation"
    FINANCE = "Finance"
    VERIFICATION = "Verification"
    BILLING = "Billing"
    WATCH = "Watch"


ASSIGNABLE_ROLES = [UserRole.SALES.value, UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value]


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(32), nullable=False, default=UserRole.SALES.value, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_to_leader_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    leader = relationship("User", remote_side="User.id", backref="team_members")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
