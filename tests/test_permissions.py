"""Tests for api/permissions.py — role flags and operating-unit scoping."""
import pytest

from api.permissions import get_caller, get_user_permissions


@pytest.mark.parametrize("role, can_edit, can_view_all", [
    ("Administrator", True, True),
    ("Management", False, True),
    ("User", True, False),
    ("Guest", False, False),
    (None, False, False),
])
def test_get_user_permissions(role, can_edit, can_view_all):
    assert get_user_permissions(role) == {"can_edit": can_edit, "can_view_all": can_view_all}


class TestCaller:
    def test_no_role_is_unrestricted(self):
        caller = get_caller(None, "NPMO")
        assert caller.can_edit and caller.can_view_all
        assert caller.scoped_unit("RPMO 1") == "RPMO 1"

    def test_user_pinned_to_own_unit(self):
        caller = get_caller("User", "RPMO 4A")
        assert caller.scoped_unit("NPMO") == "RPMO 4A"
        assert caller.scoped_unit(None) == "RPMO 4A"

    def test_user_without_unit_not_pinned(self):
        assert get_caller("User", None).scoped_unit("All") == "All"

    def test_management_views_everything(self):
        caller = get_caller("Management", "NPMO")
        assert caller.scoped_unit(None) is None
        assert caller.can_edit is False
