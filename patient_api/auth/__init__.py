"""
Authentication module.

This module provides:
- Email and password sign-in
- JWT token authentication
- Role-based access control
- Admin impersonation sessions
"""
