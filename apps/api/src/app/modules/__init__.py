"""Feature modules (admins, auth, students)."""
