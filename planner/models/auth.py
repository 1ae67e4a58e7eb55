"""
Auth Models — companies, users, per-company memberships.

A user belongs to any number of companies through ``UserCompany``; each
membership carries the user's role in that company and the company-scoped
supervisor edge (subordinate = user_id, supervisor = supervisor_id).

The cross-company super-admin is a global flag on ``User``, never a
per-company role row.
"""

import enum
from datetime import datetime, timezone

from planner.models import db


class Role(str, enum.Enum):
    """Closed set of roles understood by the access engine."""

    MEMBER = "member"
    SUPERVISOR = "supervisor"
    COMPANY_ADMIN = "company_admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value):
        """Coerce a string or Role into a Role; raises ValueError on unknown input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


# Roles that may be stored on a membership row
MEMBERSHIP_ROLES = (Role.MEMBER, Role.SUPERVISOR, Role.COMPANY_ADMIN)

USER_STATUSES = {"active", "invited", "inactive"}


# ═══════════════════════════════════════════════════════════════
# 1. COMPANIES
# ═══════════════════════════════════════════════════════════════
class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    memberships = db.relationship(
        "UserCompany", back_populates="company", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    status = db.Column(db.String(20), default="active")  # active, invited, inactive
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)
    # Persisted "selected company"; NULL for a super-admin in all-companies mode
    current_company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    memberships = db.relationship(
        "UserCompany", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan", foreign_keys="UserCompany.user_id",
    )

    def to_dict(self, include_memberships=False):
        d = {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "status": self.status,
            "is_super_admin": bool(self.is_super_admin),
            "current_company_id": self.current_company_id,
        }
        if include_memberships:
            d["memberships"] = [m.to_dict() for m in self.memberships.all()]
        return d

    @property
    def is_active(self):
        return self.status == "active"


# ═══════════════════════════════════════════════════════════════
# 3. USER_COMPANIES (membership + supervisor edge)
# ═══════════════════════════════════════════════════════════════
class UserCompany(db.Model):
    __tablename__ = "user_companies"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    role = db.Column(db.String(30), nullable=False, default=Role.MEMBER.value)
    supervisor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "company_id", name="uq_user_company"),
        db.Index("ix_user_companies_company_supervisor", "company_id", "supervisor_id"),
    )

    user = db.relationship("User", back_populates="memberships", foreign_keys=[user_id])
    supervisor = db.relationship("User", foreign_keys=[supervisor_id])
    company = db.relationship("Company", back_populates="memberships")

    @property
    def role_enum(self):
        return Role.parse(self.role)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "role": self.role,
            "supervisor_id": self.supervisor_id,
        }

    def __repr__(self):
        return f"<UserCompany user={self.user_id} company={self.company_id} role={self.role}>"
