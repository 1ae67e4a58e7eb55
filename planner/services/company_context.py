"""
Company Context Resolver — which company is the actor operating in, and as what.

    resolve_context(actor) → CompanyContext(user_id, company_id, role, is_super_admin)

Rules:
  - super-admin with no selected company → company_id=None (read-only
    aggregate mode; every mutation path rejects it downstream)
  - otherwise the actor's selected company, but only if the actor holds a
    membership there; no membership → company_id=None, role=None and every
    downstream check denies

The resolver is a pure lookup. It never raises for a missing or foreign
company; it fails closed by returning an empty context.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import false

from planner.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from planner.models import db
from planner.models.auth import Company, Role, User, UserCompany

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyContext:
    user_id: int
    company_id: int | None
    role: Role | None
    is_super_admin: bool = False

    @property
    def effective_role(self) -> Role | None:
        """SUPERADMIN overrides whatever per-company role the actor holds."""
        if self.is_super_admin:
            return Role.SUPERADMIN
        return self.role

    @property
    def all_companies(self) -> bool:
        return self.is_super_admin and self.company_id is None

    def to_dict(self):
        role = self.effective_role
        return {
            "user_id": self.user_id,
            "company_id": self.company_id,
            "role": role.value if role else None,
            "is_super_admin": self.is_super_admin,
            "read_only": self.company_id is None,
        }


def get_membership(user_id: int, company_id: int | None) -> UserCompany | None:
    if company_id is None:
        return None
    return UserCompany.query.filter_by(user_id=user_id, company_id=company_id).first()


def _active_company(company_id: int | None) -> Company | None:
    if company_id is None:
        return None
    company = db.session.get(Company, company_id)
    if company is None or not company.is_active:
        return None
    return company


def resolve_context(actor, selected_company_id: int | None = None) -> CompanyContext:
    """Build the CompanyContext for *actor* (a User or a user id).

    ``selected_company_id`` overrides the persisted selection (a token
    minted for a specific company); membership is still verified.
    """
    user = actor if isinstance(actor, User) else db.session.get(User, actor)
    if user is None:
        return CompanyContext(user_id=int(actor), company_id=None, role=None)

    company_id = selected_company_id if selected_company_id is not None else user.current_company_id

    if user.is_super_admin:
        company = _active_company(company_id)
        return CompanyContext(
            user_id=user.id,
            company_id=company.id if company else None,
            role=Role.SUPERADMIN,
            is_super_admin=True,
        )

    if company_id is None or _active_company(company_id) is None:
        return CompanyContext(user_id=user.id, company_id=None, role=None)

    membership = get_membership(user.id, company_id)
    if membership is None:
        logger.info("User %s has no membership in selected company %s", user.id, company_id)
        return CompanyContext(user_id=user.id, company_id=None, role=None)

    try:
        role = membership.role_enum
    except ValueError:
        logger.warning("Membership %s carries unknown role %r", membership.id, membership.role)
        return CompanyContext(user_id=user.id, company_id=None, role=None)

    return CompanyContext(user_id=user.id, company_id=company_id, role=role)


def select_company(user_id: int, company_id: int | None) -> CompanyContext:
    """Persist the actor's selected company and return the new context.

    Super-admins may select any active company or clear the selection
    (all-companies mode). Everyone else must hold a membership there.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)

    if company_id is None:
        if not user.is_super_admin:
            raise ValidationError("company_id is required", details={"company_id": "required"})
    else:
        if _active_company(company_id) is None:
            raise NotFoundError(resource="Company", resource_id=company_id)
        if not user.is_super_admin and get_membership(user.id, company_id) is None:
            raise ForbiddenError("You are not a member of this company")

    user.current_company_id = company_id
    db.session.flush()
    logger.info("User %s selected company %s", user.id, company_id)
    return resolve_context(user)


def list_companies(context: CompanyContext) -> list[Company]:
    """Companies the actor can switch into."""
    if context.is_super_admin:
        return Company.query.filter_by(is_active=True).order_by(Company.name).all()
    return (
        Company.query.join(UserCompany, UserCompany.company_id == Company.id)
        .filter(UserCompany.user_id == context.user_id, Company.is_active.is_(True))
        .order_by(Company.name)
        .all()
    )


def apply_company_scope(query, context: CompanyContext, column):
    """Filter a list query to the actor's company.

    No filter in super-admin all-companies mode; an empty result for an
    actor without a resolved company.
    """
    if context.all_companies:
        return query
    if context.company_id is None:
        return query.filter(false())
    return query.filter(column == context.company_id)
