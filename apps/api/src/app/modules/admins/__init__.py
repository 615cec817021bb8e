"""
Admins Module

Admin accounts, their login sessions and password reset tokens, plus the
super-admin account management endpoints (``/api/admin/manage``).
"""
