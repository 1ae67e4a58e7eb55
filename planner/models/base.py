"""
CompanyModel — Abstract base class for company-scoped root models.

Root objects of the planning tree (objectives, key people) carry the
company_id column themselves; their children never do and resolve it
through the parent.
"""

from planner.models import db


class CompanyModel(db.Model):
    """Abstract base for company-scoped tables."""
    __abstract__ = True

    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
