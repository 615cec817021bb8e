"""
Unit tests for the authentication background jobs.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core import scheduler
from app.modules.auth import jobs


@pytest.fixture
def session_maker(mock_db):
    maker = MagicMock()
    maker.return_value.__aenter__.return_value = mock_db
    maker.return_value.__aexit__.return_value = False
    with patch("app.modules.auth.jobs.async_session_maker", maker):
        yield maker


class TestCleanupJobs:
    """Tests for the sweep job functions."""

    @pytest.mark.asyncio
    async def test_session_sweep_reports_count(self, session_maker, mock_db):
        with patch(
            "app.modules.auth.jobs.session_repository.cleanup_expired_sessions",
            new=AsyncMock(return_value=7),
        ) as sweep:
            result = await jobs.cleanup_expired_sessions_job()

        assert result["deleted"] == 7
        assert sweep.call_args.args[0] is mock_db
        assert sweep.call_args.args[1].tzinfo is not None

    @pytest.mark.asyncio
    async def test_reset_sweep_reports_count(self, session_maker):
        with patch(
            "app.modules.auth.jobs.password_reset_repository.cleanup_stale_resets",
            new=AsyncMock(return_value=2),
        ):
            result = await jobs.cleanup_password_resets_job()

        assert result["deleted"] == 2


class TestRegisterAuthJobs:
    """Tests for register_auth_jobs."""

    def test_registers_both_sweeps(self):
        scheduler.clear_registry()
        try:
            jobs.register_auth_jobs()
            ids = {job["job_id"] for job in scheduler.list_registered_jobs()}
            assert ids == {jobs.JOB_ID_CLEANUP_SESSIONS, jobs.JOB_ID_CLEANUP_RESETS}
        finally:
            scheduler.clear_registry()
