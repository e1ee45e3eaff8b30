"""
Unit tests for SessionGuard.
"""

import pytest
from unittest.mock import AsyncMock

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from runner.session_guard import SessionGuard

LOGIN_URL = "https://app.example.com/auth/login"
DASHBOARD_URL = "https://app.example.com/dashboard"


@pytest.fixture
def guard(tmp_path):
    return SessionGuard("qa@example.com", "secret", auth_state_path=str(tmp_path / "auth.json"))


def land_on(page, url):
    """Make the submit click move the page to url."""
    async def _click(*args, **kwargs):
        page.url = url
    page.click = AsyncMock(side_effect=_click)


class TestIsExpired:

    def test_login_url_is_expired(self, guard, page_factory):
        assert guard.is_expired(page_factory(url=LOGIN_URL))

    def test_other_url_is_live(self, guard, page_factory):
        assert not guard.is_expired(page_factory(url=DASHBOARD_URL))


class TestEnsureLoggedIn:
    """Re-authentication."""

    @pytest.mark.asyncio
    async def test_live_session_does_nothing(self, guard, page_factory):
        page = page_factory(url=DASHBOARD_URL)

        assert await guard.ensure_logged_in(page) is True
        page.fill.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_relogin_persists_state(self, guard, page_factory, mock_context):
        page = page_factory(url=LOGIN_URL)
        land_on(page, DASHBOARD_URL)

        assert await guard.ensure_logged_in(page, mock_context) is True

        page.fill.assert_any_await(SessionGuard.EMAIL_SELECTOR, "qa@example.com", timeout=guard.field_timeout)
        page.fill.assert_any_await(SessionGuard.PASSWORD_SELECTOR, "secret", timeout=guard.field_timeout)
        mock_context.storage_state.assert_awaited_once_with(path=guard.auth_state_path)
        assert guard.recoveries == 1

    @pytest.mark.asyncio
    async def test_still_on_login_page(self, guard, page_factory):
        page = page_factory(url=LOGIN_URL)

        assert await guard.ensure_logged_in(page) is False
        assert guard.recoveries == 0

    @pytest.mark.asyncio
    async def test_missing_credentials(self, page_factory):
        guard = SessionGuard(None, None)
        page = page_factory(url=LOGIN_URL)

        assert await guard.ensure_logged_in(page) is False
        page.fill.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_playwright_error_is_not_raised(self, guard, page_factory):
        page = page_factory(url=LOGIN_URL)
        page.fill = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 5000ms exceeded."))

        assert await guard.ensure_logged_in(page) is False

    def test_from_settings(self, settings):
        guard = SessionGuard.from_settings(settings)

        assert guard.username == settings.app_username
        assert guard.login_path == settings.login_path
        assert guard.auth_state_path == settings.auth_state_path
