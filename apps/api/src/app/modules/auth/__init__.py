"""
Authentication Module

Admin login sessions: token issuance and rotation, logout, session
listing and revocation, and password reset.
"""
