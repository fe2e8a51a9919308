"""
Role and plan based permission gate.

Role differences live in the CAPABILITIES table rather than in per-role code
paths. A denial is a normal return value carrying a reason the caller can
show; nothing here raises for a business condition or has side effects.
"""
from enum import Enum
from typing import Any

from pydantic import BaseModel

ROLES = {"admin", "owner", "manager", "scanner", "indexer", "qa", "client"}
STAFF_ROLES = {"manager", "scanner", "indexer", "qa"}
UPLOADER_ROLES = {"owner", "manager", "scanner", "client"}


class Action(str, Enum):
    ADD_CLIENT = "add_client"
    SHARE_DOCUMENT = "share_document"
    VIEW_ACTIVITY_LOGS = "view_activity_logs"
    VIEW_REPORTS = "view_reports"
    CHAT_WITH_DOCUMENT = "chat_with_document"
    MULTIPLE_UPLOADS = "multiple_uploads"
    RESOLVE_DISPUTE = "resolve_dispute"
    CREATE_DISPUTE = "create_dispute"
    VERIFY_INVOICE = "verify_invoice"
    SUBMIT_INVOICE = "submit_invoice"


class PlanFlags(BaseModel):
    """Feature flags of a company Plan or a ClientPlan."""

    model_config = {"from_attributes": True}

    can_share_document: bool = False
    can_view_activity_logs: bool = False
    can_view_chat: bool = False
    can_view_reports: bool = False
    allow_multiple_uploads: bool = False
    can_add_client: bool = False
    number_of_clients: int = 0


class InvoiceState(BaseModel):
    model_config = {"from_attributes": True}

    invoice_submitted: bool = False
    invoice_submitted_admin: bool = False


class Decision(BaseModel):
    model_config = {"frozen": True}

    allowed: bool
    reason: str | None = None


# roles:        the actor's role must be one of these
# flag:         plan flag that must be true
# exempt_roles: roles allowed regardless of the plan flag
# limit:        plan limit the current count must stay below
# user_flag:    per-user switch (see effective_create_dispute)
# invoice:      invoice state the action needs
CAPABILITIES: dict[Action, dict[str, Any]] = {
    Action.ADD_CLIENT: {"roles": {"owner"}, "flag": "can_add_client", "limit": "number_of_clients"},
    Action.SHARE_DOCUMENT: {"flag": "can_share_document"},
    Action.VIEW_ACTIVITY_LOGS: {"flag": "can_view_activity_logs"},
    Action.VIEW_REPORTS: {"flag": "can_view_reports"},
    Action.CHAT_WITH_DOCUMENT: {"flag": "can_view_chat", "exempt_roles": {"owner"}},
    Action.MULTIPLE_UPLOADS: {"flag": "allow_multiple_uploads"},
    Action.RESOLVE_DISPUTE: {"roles": {"manager", "owner"}},
    Action.CREATE_DISPUTE: {"user_flag": "create_dispute"},
    Action.VERIFY_INVOICE: {"roles": {"admin", "owner"}, "invoice": "awaiting_verification"},
    Action.SUBMIT_INVOICE: {"roles": {"owner"}, "invoice": "awaiting_submission"},
}

FEATURE_NAMES = {
    Action.ADD_CLIENT: "adding clients",
    Action.SHARE_DOCUMENT: "document sharing",
    Action.VIEW_ACTIVITY_LOGS: "viewing activity logs",
    Action.VIEW_REPORTS: "viewing reports",
    Action.CHAT_WITH_DOCUMENT: "chatting with documents",
    Action.MULTIPLE_UPLOADS: "multiple uploads",
    Action.RESOLVE_DISPUTE: "resolving disputes",
    Action.CREATE_DISPUTE: "creating disputes",
    Action.VERIFY_INVOICE: "verifying invoices",
    Action.SUBMIT_INVOICE: "submitting invoices",
}

# Actions reported by capabilities(); invoice actions need an invoice to decide.
PROFILE_ACTIONS = [action for action, rule in CAPABILITIES.items() if "invoice" not in rule]


def explain(action: Action | str) -> str:
    """User-facing message for a denied action."""
    action = Action(action)
    feature = FEATURE_NAMES[action]
    if "flag" in CAPABILITIES[action]:
        return f"Your current plan doesn't allow access to {feature}."
    return f"You don't have permission for {feature}."


def default_create_dispute(role: str) -> bool:
    return role in ("manager", "qa")


def effective_create_dispute(role: str, requested: bool | None = None) -> bool:
    """Managers can always raise disputes; other roles use their flag or the role default."""
    if role == "manager":
        return True
    if requested is None:
        return default_create_dispute(role)
    return requested


def _deny(reason: str) -> Decision:
    return Decision(allowed=False, reason=reason)


def check(
    action: Action | str,
    role: str,
    flags: Any = None,
    *,
    client_count: int = 0,
    invoice: Any = None,
    create_dispute: bool | None = None,
) -> Decision:
    """Decide whether ``role`` with plan ``flags`` may perform ``action``.

    ``flags`` is a PlanFlags, a plan row or a mapping; None means no plan.
    ``invoice`` is required for the invoice actions.
    """
    action = Action(action)
    rule = CAPABILITIES[action]
    feature = FEATURE_NAMES[action]

    if role in rule.get("exempt_roles", ()):
        return Decision(allowed=True)

    roles = rule.get("roles")
    if roles and role not in roles:
        return _deny(f"The {role} role does not permit {feature}.")

    flag = rule.get("flag")
    if flag:
        if flags is None:
            return _deny(f"No active plan grants access to {feature}.")
        plan = flags if isinstance(flags, PlanFlags) else PlanFlags.model_validate(flags)
        if not getattr(plan, flag):
            return _deny(explain(action))
        limit_name = rule.get("limit")
        if limit_name:
            limit = getattr(plan, limit_name)
            if client_count >= limit:
                return _deny(f"Client limit reached ({client_count} of {limit}). Upgrade your plan to add more.")

    if "user_flag" in rule and not effective_create_dispute(role, create_dispute):
        return _deny(explain(action))

    invoice_rule = rule.get("invoice")
    if invoice_rule:
        if invoice is None:
            raise ValueError(f"{action.value} needs the invoice being acted on")
        state = invoice if isinstance(invoice, InvoiceState) else InvoiceState.model_validate(invoice)
        if invoice_rule == "awaiting_verification":
            if not state.invoice_submitted:
                return _deny("Invoice has not been submitted yet.")
            if state.invoice_submitted_admin:
                return _deny("Invoice is already verified.")
        elif state.invoice_submitted:
            return _deny("Invoice has already been submitted.")

    return Decision(allowed=True)


def can(action: Action | str, role: str, flags: Any = None, **context) -> bool:
    return check(action, role, flags, **context).allowed


def capabilities(role: str, flags: Any = None, **context) -> dict[str, Decision]:
    return {action.value: check(action, role, flags, **context) for action in PROFILE_ACTIONS}
