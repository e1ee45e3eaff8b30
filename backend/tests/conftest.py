"""
Pytest configuration and shared fixtures for the pipeline tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Iterable

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))


# ==================== Mock Locator / Page ====================

def make_locator(visible: bool = False):
    """Mock Playwright locator; `.first` returns the locator itself."""
    locator = AsyncMock()
    locator.first = locator

    if visible:
        locator.wait_for = AsyncMock(return_value=None)
    else:
        locator.wait_for = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 2000ms exceeded."))

    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.clear = AsyncMock()
    locator.select_option = AsyncMock()
    locator.evaluate = AsyncMock(return_value="DIV")
    return locator


def build_page(visible: Iterable[str] = (), url: str = "https://app.example.com/dashboard"):
    """
    Mock Playwright page where only the selectors in `visible` resolve.

    Locators are cached per selector, so `page.locators[sel]` is the same
    object the code under test acted on.
    """
    visible = set(visible)
    locators = {}

    def locator_for(selector):
        if selector not in locators:
            locators[selector] = make_locator(selector in visible)
        return locators[selector]

    page = AsyncMock()
    page.url = url
    page.locators = locators
    page.is_closed = Mock(return_value=False)
    page.locator = Mock(side_effect=locator_for)

    page.goto = AsyncMock(return_value=None)
    page.fill = AsyncMock()
    page.click = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"fake_screenshot_data")
    return page


@pytest.fixture
def page_factory():
    """Factory for pages with a chosen set of visible selectors."""
    return build_page


@pytest.fixture
def mock_page():
    """A page on which no selector is visible."""
    return build_page()


@pytest.fixture
def mock_context():
    """Create a mock Playwright browser context."""
    context = AsyncMock()
    context.storage_state = AsyncMock(return_value={})
    return context


# ==================== Alias Map Fixture ====================

@pytest.fixture
def alias_document():
    """Small alias map document covering the mapped controls."""
    return {
        "whatsapp": {
            "messagingInterface": {
                "selector": "#wa-nav",
                "alternates": ['[href*="whatsapp"]']
            },
            "sendButton": {
                "selector": "#wa-send",
                "alternates": ['[data-testid="send"]']
            },
            "messageInput": {
                "selector": "#wa-input",
                "alternates": []
            },
            "channelDropdown": {
                "selector": "#channel",
                "alternates": []
            }
        },
        "waba": {
            "categoryDropdown": {"selector": "#category", "alternates": []},
            "wabaDropdown": {"selector": "#waba", "alternates": []}
        },
        "common": {
            "submitButton": {"selector": "#common-submit", "alternates": []}
        }
    }


@pytest.fixture
def alias_map(alias_document):
    from runner.alias_map import UIAliasMap

    return UIAliasMap.from_dict(alias_document)


# ==================== Settings Fixture ====================

@pytest.fixture
def settings(tmp_path):
    """Settings pointing every file and folder into tmp_path."""
    from settings import Settings

    return Settings(
        base_url="https://app.example.com/auth/login",
        app_username="qa@example.com",
        app_password="secret",
        auth_state_path=str(tmp_path / "auth-state.json"),
        stories_file=str(tmp_path / "jira_stories.txt"),
        assignee_map_file=str(tmp_path / "assignee_map.json"),
        testcases_dir=str(tmp_path / "openai_outputs"),
        txt_dir=str(tmp_path / "email_outputs"),
        diagnostics_dir=str(tmp_path / "test-results"),
        ui_map_path=str(tmp_path / "ui-elements-map.json"),
        request_delay_ms=0,
        step_delay_ms=0
    )
