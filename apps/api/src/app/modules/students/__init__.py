"""
Students Module

Public training signup flow and the admin signup dashboard.

API Endpoints (public, /api/students):
- POST  /signup              - Sign up for a training type
- GET   /signup/{id}         - Signup confirmation
- GET   /signup-links        - Deep links (QR targets) per training type
- GET   /{id}/signups        - All signups of a student
- PATCH /{id}/opt-out        - Email / SMS reminder opt-out

API Endpoints (admin, /api/admin):
- GET    /signups            - Full signup table, optionally filtered / sorted / paged
- GET    /signups/stats      - Counts by status and training type
- PATCH  /signups/{id}       - Update status, reminder date or notes
- DELETE /signups/{id}       - Remove a signup
- GET    /students           - List students
"""
