"""
Tests for the role permission table (``procurement_kernel.domain.permissions``).

Invariants tested:
- Every Role has an entry; unknown roles fail closed to NO_ACCESS.
- Only admin and manager may act on purchase orders beyond viewing.
- Manager approvals are capped at 100,000; admin approvals are uncapped.
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from procurement_kernel.domain.permissions import (
    NO_ACCESS,
    ROLE_PERMISSIONS,
    PurchaseOrderAction,
    Role,
    RolePermissionSet,
    coerce_role,
    permissions_for,
)


# =========================================================================
# ROLE_PERMISSIONS table
# =========================================================================


class TestRolePermissionTable:
    """The static role -> permission set mapping."""

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_admin_has_every_action_and_no_ceiling(self):
        admin = ROLE_PERMISSIONS[Role.ADMIN]
        assert admin.granted_actions() == frozenset(PurchaseOrderAction)
        assert admin.max_approval_amount is None

    def test_manager_has_every_action_with_ceiling(self):
        manager = ROLE_PERMISSIONS[Role.MANAGER]
        assert manager.granted_actions() == frozenset(PurchaseOrderAction)
        assert manager.max_approval_amount == Decimal("100000")

    def test_cashier_can_only_view(self):
        assert ROLE_PERMISSIONS[Role.CASHIER].granted_actions() == {PurchaseOrderAction.VIEW}

    def test_accountant_views_history_and_audit_trail(self):
        assert ROLE_PERMISSIONS[Role.ACCOUNTANT].granted_actions() == {
            PurchaseOrderAction.VIEW,
            PurchaseOrderAction.VIEW_HISTORY,
            PurchaseOrderAction.VIEW_AUDIT_TRAIL,
        }

    def test_employee_has_nothing(self):
        assert ROLE_PERMISSIONS[Role.EMPLOYEE].granted_actions() == frozenset()

    def test_permission_set_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            ROLE_PERMISSIONS[Role.CASHIER].can_approve = True  # type: ignore[misc]


# =========================================================================
# Lookup
# =========================================================================


class TestPermissionsFor:

    def test_lookup_by_enum_and_string_agree(self):
        assert permissions_for(Role.MANAGER) is permissions_for("manager")

    def test_unknown_role_fails_closed(self):
        assert permissions_for("superuser") is NO_ACCESS
        assert permissions_for(None) is NO_ACCESS

    def test_unknown_role_is_logged(self, captured_logs):
        permissions_for("superuser")
        records = [r for r in captured_logs() if r["message"] == "po_permissions_unknown_role"]
        assert records and records[0]["role"] == "superuser"

    def test_coerce_role(self):
        assert coerce_role("admin") is Role.ADMIN
        assert coerce_role(Role.CASHIER) is Role.CASHIER
        assert coerce_role("ADMIN") is None

    def test_allows_matches_boolean_fields(self):
        perms = RolePermissionSet(can_view=True, can_cancel=True)
        assert perms.allows(PurchaseOrderAction.VIEW)
        assert perms.allows("cancel")
        assert not perms.allows(PurchaseOrderAction.APPROVE)
