"""
Pipeline settings.

Everything is read from the environment (optionally populated from a
``.env`` file next to ``backend/``) once, into a single Settings object
that is handed to the components that need it.
"""

import os
import pathlib
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

env_path = pathlib.Path(__file__).parent.parent / '.env'
DEFAULT_UI_MAP = str(pathlib.Path(__file__).parent.parent / "data" / "ui-elements-map.json")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Application under test
    base_url: str = "http://localhost:3000"
    app_username: Optional[str] = None
    app_password: Optional[str] = None
    login_path: str = "/auth/login"
    auth_state_path: str = "auth-state.json"
    headless: bool = True

    # Files and folders
    stories_file: str = "jira_stories.txt"
    assignee_map_file: str = "assignee_map.json"
    testcases_dir: str = "openai_outputs"
    txt_dir: str = "email_outputs"
    diagnostics_dir: str = "test-results"
    ui_map_path: str = DEFAULT_UI_MAP
    mail_separator: str = "---"

    # Runner timing (milliseconds)
    session_check_interval: int = 3
    resolve_timeout_ms: int = 2000
    action_timeout_ms: int = 5000
    verify_timeout_ms: int = 5000
    negative_verify_timeout_ms: int = 3000
    network_idle_timeout_ms: int = 10000
    navigation_timeout_ms: int = 15000
    login_timeout_ms: int = 15000
    step_delay_ms: int = 500

    # Jira
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None
    jira_project_key: Optional[str] = None
    jira_max_stories: int = 10
    email_domain: str = "example.com"

    # LLM
    llm_api_url: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2000
    llm_system_role: str = "You are a senior QA automation architect."
    request_delay_ms: int = 1200

    # SMTP
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    fallback_email: Optional[str] = None
    story_key_pattern: str = r"([A-Z][A-Z0-9]+-\d+)"

    @property
    def app_url(self) -> str:
        """Base URL with the login path stripped."""
        url = self.base_url
        if self.login_path and self.login_path in url:
            url = url.replace(self.login_path, "")
        return url.rstrip("/") or url

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """Build settings from environment variables."""
        if load_env_file:
            load_dotenv(env_path)

        openai_key = os.getenv("OPENAI_API_KEY")
        llm_api_url = os.getenv("LLM_API_URL") or (
            os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
            if openai_key else None
        )

        return cls(
            base_url=os.getenv("BASE_URL", "http://localhost:3000"),
            app_username=os.getenv("APP_USERNAME"),
            app_password=os.getenv("APP_PASSWORD"),
            login_path=os.getenv("LOGIN_PATH", "/auth/login"),
            auth_state_path=os.getenv("AUTH_STATE_PATH", "auth-state.json"),
            headless=_env_bool("HEADLESS", True),
            stories_file=os.getenv("JIRA_STORIES_FILE", "jira_stories.txt"),
            assignee_map_file=os.getenv("JIRA_ASSIGNEE_MAP_FILE", "assignee_map.json"),
            testcases_dir=os.getenv("OUTPUT_DIR", "openai_outputs"),
            txt_dir=os.getenv("TXT_FOLDER", "email_outputs"),
            diagnostics_dir=os.getenv("DIAGNOSTICS_DIR", "test-results"),
            ui_map_path=os.getenv("UI_MAP_FILE", DEFAULT_UI_MAP),
            mail_separator=os.getenv("MAIL_SEPARATOR", "---"),
            session_check_interval=_env_int("SESSION_CHECK_INTERVAL", 3),
            step_delay_ms=_env_int("STEP_DELAY_MS", 500),
            jira_base_url=os.getenv("JIRA_BASE_URL"),
            jira_email=os.getenv("JIRA_EMAIL"),
            jira_api_token=os.getenv("JIRA_API_TOKEN"),
            jira_project_key=os.getenv("JIRA_PROJECT_KEY"),
            jira_max_stories=_env_int("JIRA_MAX_STORIES", 10),
            email_domain=os.getenv("EMAIL_DOMAIN", "example.com"),
            llm_api_url=llm_api_url,
            llm_api_key=os.getenv("LLM_API_KEY") or openai_key,
            llm_model=os.getenv("LLM_MODEL") or os.getenv("OPENAI_MODEL"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            llm_temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.3")),
            llm_max_tokens=_env_int("OPENAI_MAX_TOKENS", 2000),
            llm_system_role=os.getenv("OPENAI_SYSTEM_ROLE", "You are a senior QA automation architect."),
            request_delay_ms=_env_int("REQUEST_DELAY_MS", 1200),
            smtp_host=os.getenv("SMTP_HOST"),
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_user=os.getenv("SMTP_USER"),
            smtp_pass=os.getenv("SMTP_PASS"),
            fallback_email=os.getenv("FALLBACK_EMAIL"),
            story_key_pattern=os.getenv("STORY_KEY_PATTERN", r"([A-Z][A-Z0-9]+-\d+)"),
        )
