"""
Tests for role-based permissions and clinic scoping.
"""
import pytest

from patient_api.auth.models import UserRole
from patient_api.auth.dependencies import require_permission
from patient_api.core.permissions import Permission, has_permission, can_access_clinic, ensure_clinic_access
from patient_api.exceptions import ForbiddenException


def test_role_permissions(make_user):
    super_admin = make_user(UserRole.SUPER_ADMIN)
    admin = make_user(UserRole.ADMIN)
    patient = make_user(UserRole.PATIENT)

    assert has_permission(super_admin, Permission.IMPERSONATE_USERS)
    assert not has_permission(admin, Permission.IMPERSONATE_USERS)
    assert has_permission(admin, Permission.REVIEW_REFUNDS)
    assert has_permission(patient, Permission.VIEW_OWN_ORDERS)
    assert not has_permission(patient, Permission.REFUND_ORDERS)


def test_permissions_combine_across_roles(make_user, make_clinic):
    clinic = make_clinic()
    brand_patient = make_user(UserRole.BRAND, UserRole.PATIENT, clinic=clinic)
    assert has_permission(brand_patient, Permission.REQUEST_REFUNDS)
    assert has_permission(brand_patient, Permission.VIEW_OWN_ORDERS)


def test_clinic_access(make_user, make_clinic):
    own, other = make_clinic(), make_clinic()
    brand = make_user(UserRole.BRAND, clinic=own)
    admin = make_user(UserRole.ADMIN)
    patient = make_user(UserRole.PATIENT, clinic=own)

    assert can_access_clinic(brand, own.id)
    assert not can_access_clinic(brand, other.id)
    assert can_access_clinic(admin, other.id)
    assert not can_access_clinic(patient, own.id)
    assert not can_access_clinic(brand, None)

    with pytest.raises(ForbiddenException):
        ensure_clinic_access(brand, other.id)


def test_admin_route_permissions(make_user, make_clinic):
    admin = make_user(UserRole.ADMIN)
    brand = make_user(UserRole.BRAND, clinic=make_clinic())

    for permission in (Permission.REVIEW_REFUNDS, Permission.VIEW_AUDIT_LOGS, Permission.MANAGE_CRON_JOBS):
        assert has_permission(admin, permission)
        assert not has_permission(brand, permission)


def test_require_permission_dependency(make_user):
    checker = require_permission(Permission.MANAGE_CRON_JOBS)
    admin = make_user(UserRole.ADMIN)

    assert checker(current_user=admin) is admin
    with pytest.raises(ForbiddenException):
        checker(current_user=make_user(UserRole.DOCTOR))
    with pytest.raises(ForbiddenException):
        require_permission(Permission.IMPERSONATE_USERS)(current_user=admin)
