"""
Unit tests for substring search patterns and their use in repositories.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from app.core.database import contains_pattern
from app.modules.admins.repository import AdminRepository
from app.modules.students import repository as students_repository


def _compiled(mock_db):
    stmt = mock_db.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect())


class TestContainsPattern:
    """Tests for contains_pattern."""

    def test_plain_text(self):
        assert contains_pattern("jordan") == "%jordan%"

    def test_wildcards_are_escaped(self):
        assert contains_pattern("50%_off") == "%50\\%\\_off%"

    def test_escape_character_is_escaped(self):
        assert contains_pattern("a\\b") == "%a\\\\b%"


class TestRepositorySearch:
    """Search input is matched literally."""

    @pytest.mark.asyncio
    async def test_student_search_escapes_underscore(self, mock_db):
        mock_db.execute.return_value = MagicMock()

        await students_repository.list_students(mock_db, search=" _ ")

        compiled = _compiled(mock_db)
        assert "ESCAPE" in str(compiled)
        assert "%\\_%" in compiled.params.values()

    @pytest.mark.asyncio
    async def test_admin_search_escapes_percent(self, mock_db):
        mock_db.execute.return_value = MagicMock()

        await AdminRepository.list_admins(mock_db, search="100%")

        compiled = _compiled(mock_db)
        assert "ESCAPE" in str(compiled)
        assert "%100\\%%" in compiled.params.values()
