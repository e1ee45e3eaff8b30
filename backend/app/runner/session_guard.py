"""
Session Guard

Detects that the authenticated session has lapsed (the browser was sent
back to the login page) and logs in again in place.
"""

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

# Configure logging
logger = logging.getLogger(__name__)


class SessionGuard:
    """
    Check-then-act re-authentication for a single shared browser session.

    There is one consumer, so no locking is done around the check.
    """

    EMAIL_SELECTOR = 'input[name="email"], input[type="email"]'
    PASSWORD_SELECTOR = 'input[name="password"], input[type="password"]'
    SUBMIT_SELECTOR = 'button:has-text("SIGN IN"), button[type="submit"]'

    def __init__(
        self,
        username: Optional[str],
        password: Optional[str],
        login_path: str = "/auth/login",
        auth_state_path: Optional[str] = None,
        field_timeout: int = 5000,
        login_timeout: int = 15000,
        settle_ms: int = 1000
    ):
        self.username = username
        self.password = password
        self.login_path = login_path
        self.auth_state_path = auth_state_path
        self.field_timeout = field_timeout
        self.login_timeout = login_timeout
        self.settle_ms = settle_ms
        self.recoveries = 0

    @classmethod
    def from_settings(cls, settings) -> "SessionGuard":
        return cls(
            username=settings.app_username,
            password=settings.app_password,
            login_path=settings.login_path,
            auth_state_path=settings.auth_state_path,
            field_timeout=settings.action_timeout_ms,
            login_timeout=settings.login_timeout_ms
        )

    def is_expired(self, page) -> bool:
        """The session boundary is the login page URL."""
        return bool(self.login_path) and self.login_path in (page.url or "")

    async def ensure_logged_in(self, page, context=None) -> bool:
        """
        Re-authenticate if the page sits on the login boundary.

        Returns False only when a re-login was needed and did not succeed.
        Failures are logged, never raised.
        """
        if not self.is_expired(page):
            return True

        logger.warning("Session expired detected! Re-authenticating...")

        if not self.username or not self.password:
            logger.error("Cannot restore session: APP_USERNAME / APP_PASSWORD not configured")
            return False

        try:
            await page.fill(self.EMAIL_SELECTOR, self.username, timeout=self.field_timeout)
            await page.fill(self.PASSWORD_SELECTOR, self.password, timeout=self.field_timeout)
            await page.click(self.SUBMIT_SELECTOR, timeout=self.field_timeout)

            await page.wait_for_load_state("networkidle", timeout=self.login_timeout)
            await page.wait_for_timeout(self.settle_ms)

            if context is not None and self.auth_state_path:
                await context.storage_state(path=self.auth_state_path)

        except PlaywrightError as e:
            logger.error(f"Failed to restore session: {e.message}")
            return False

        if self.is_expired(page):
            logger.error("Still on the login page after re-authentication")
            return False

        self.recoveries += 1
        logger.info("Session restored!")
        return True
