import pytest

from digital_archive.services.permission_service import (
    ROLES,
    Action,
    PlanFlags,
    can,
    capabilities,
    check,
    effective_create_dispute,
    explain,
)

FULL_PLAN = PlanFlags(
    can_share_document=True,
    can_view_activity_logs=True,
    can_view_chat=True,
    can_view_reports=True,
    allow_multiple_uploads=True,
    can_add_client=True,
    number_of_clients=3,
)


class TestPlanGatedActions:
    @pytest.mark.parametrize("role", sorted(ROLES))
    def test_share_denied_without_flag_for_every_role(self, role):
        assert can(Action.SHARE_DOCUMENT, role, {"can_share_document": False}) is False

    def test_share_allowed_with_flag(self):
        assert can("share_document", "scanner", FULL_PLAN)

    def test_owner_can_always_chat(self):
        assert can(Action.CHAT_WITH_DOCUMENT, "owner", {"can_view_chat": False}) is True

    def test_staff_chat_follows_plan(self):
        assert not can(Action.CHAT_WITH_DOCUMENT, "manager", {"can_view_chat": False})
        assert can(Action.CHAT_WITH_DOCUMENT, "manager", {"can_view_chat": True})

    def test_missing_plan_denies(self):
        decision = check(Action.VIEW_REPORTS, "manager", None)
        assert not decision.allowed
        assert "No active plan" in decision.reason

    def test_denial_reason_names_feature(self):
        decision = check(Action.SHARE_DOCUMENT, "qa", PlanFlags())
        assert decision.reason == "Your current plan doesn't allow access to document sharing."
        assert decision.reason == explain(Action.SHARE_DOCUMENT)


class TestAddClient:
    def test_owner_below_limit(self):
        assert can(Action.ADD_CLIENT, "owner", FULL_PLAN, client_count=2)

    def test_owner_at_limit(self):
        decision = check(Action.ADD_CLIENT, "owner", FULL_PLAN, client_count=3)
        assert not decision.allowed
        assert "Client limit reached (3 of 3)" in decision.reason

    def test_manager_never_adds_clients(self):
        assert not can(Action.ADD_CLIENT, "manager", FULL_PLAN)

    def test_flag_required(self):
        plan = FULL_PLAN.model_copy(update={"can_add_client": False})
        assert not can(Action.ADD_CLIENT, "owner", plan)


class TestDisputes:
    def test_resolve_roles(self):
        assert can(Action.RESOLVE_DISPUTE, "manager")
        assert can(Action.RESOLVE_DISPUTE, "owner")
        assert not can(Action.RESOLVE_DISPUTE, "qa")

    def test_manager_always_creates(self):
        assert can(Action.CREATE_DISPUTE, "manager", create_dispute=False)

    def test_qa_defaults_on_but_can_be_switched_off(self):
        assert can(Action.CREATE_DISPUTE, "qa")
        assert not can(Action.CREATE_DISPUTE, "qa", create_dispute=False)

    def test_scanner_defaults_off(self):
        assert not can(Action.CREATE_DISPUTE, "scanner")
        assert can(Action.CREATE_DISPUTE, "scanner", create_dispute=True)

    def test_effective_flag(self):
        assert effective_create_dispute("manager", False) is True
        assert effective_create_dispute("indexer") is False


class TestInvoiceActions:
    def test_owner_submits_unsubmitted(self):
        assert can(Action.SUBMIT_INVOICE, "owner", invoice={"invoice_submitted": False})

    def test_cannot_submit_twice(self):
        decision = check(Action.SUBMIT_INVOICE, "owner", invoice={"invoice_submitted": True})
        assert decision.reason == "Invoice has already been submitted."

    def test_verify_requires_submission(self):
        assert not can(Action.VERIFY_INVOICE, "admin", invoice={"invoice_submitted": False})
        assert can(Action.VERIFY_INVOICE, "admin", invoice={"invoice_submitted": True})

    def test_verified_invoice_is_final(self):
        state = {"invoice_submitted": True, "invoice_submitted_admin": True}
        assert not can(Action.VERIFY_INVOICE, "admin", invoice=state)

    def test_scanner_cannot_verify(self):
        assert not can(Action.VERIFY_INVOICE, "scanner", invoice={"invoice_submitted": True})

    def test_invoice_required(self):
        with pytest.raises(ValueError):
            check(Action.VERIFY_INVOICE, "admin")


class TestCapabilities:
    def test_reports_every_plan_level_action(self):
        caps = capabilities("owner", FULL_PLAN, client_count=0)
        assert "verify_invoice" not in caps
        assert caps["add_client"].allowed
        assert caps["chat_with_document"].allowed

    def test_pure(self):
        assert check(Action.VIEW_REPORTS, "qa", FULL_PLAN) == check(Action.VIEW_REPORTS, "qa", FULL_PLAN)
