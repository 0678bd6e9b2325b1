"""
Tests for error-to-status mapping.
"""
import pytest

from patient_api.exceptions import status_code_for_error


@pytest.mark.parametrize("message, expected", [
    ("Order not found", 404),
    ("Not authenticated", 401),
    ("Unauthorized request", 401),
    ("Invalid token supplied", 401),
    ("Forbidden", 403),
    ("Access denied for clinic", 403),
    ("Missing permission", 403),
    ("Order ID is required", 400),
    ("Invalid amount", 400),
    ("Order has already been refunded", 400),
    ("connection reset by peer", 500),
])
def test_status_code_for_error(message, expected):
    assert status_code_for_error(RuntimeError(message)) == expected
