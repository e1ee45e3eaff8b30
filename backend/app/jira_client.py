"""
Jira story source.

Fetches user stories for a project and writes them to the plain-text
stories file consumed by the test case generator, plus an
assignee -> email map used when mailing the results.
"""

import base64
import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests

from models import Story

logger = logging.getLogger(__name__)

STORY_SEPARATOR = "=" * 40


class JiraClient:
    """Minimal Jira Cloud REST v3 client."""

    API_BASE = "rest/api/3"

    def __init__(
        self,
        base_url: Optional[str],
        email: Optional[str],
        api_token: Optional[str],
        project_key: Optional[str],
        timeout: int = 30
    ):
        if not base_url or not email or not api_token or not project_key:
            raise ValueError("Missing required Jira configuration (JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN, JIRA_PROJECT_KEY)")

        self.base_url = base_url.rstrip('/')
        self.email = email
        self.api_token = api_token
        self.project_key = project_key
        self.timeout = timeout
        self.headers = self._create_headers()

    @classmethod
    def from_settings(cls, settings) -> "JiraClient":
        return cls(
            base_url=settings.jira_base_url,
            email=settings.jira_email,
            api_token=settings.jira_api_token,
            project_key=settings.jira_project_key
        )

    def _create_headers(self) -> Dict[str, str]:
        credentials = base64.b64encode(f"{self.email}:{self.api_token}".encode()).decode()
        return {
            'Authorization': f'Basic {credentials}',
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{self.API_BASE}/{endpoint}"

    def fetch_user_by_account_id(self, account_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Look up a Jira user; None when unknown or on any HTTP error."""
        if not account_id:
            return None
        try:
            response = requests.get(
                self._url("user"),
                headers=self.headers,
                params={"accountId": account_id},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.debug(f"User lookup failed for {account_id}: {e}")
            return None

    def search_stories(self, max_results: int = 10) -> Optional[Dict[str, Any]]:
        """Raw JQL search for the project's stories; None on failure."""
        payload = {
            "jql": f"project = {self.project_key} AND issuetype = Story",
            "maxResults": int(max_results),
            "fields": ["summary", "description", "assignee"]
        }
        try:
            response = requests.post(
                self._url("search/jql"),
                headers=self.headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            logger.error(f"Error fetching stories: {e}")
            logger.error(f"Response status: {e.response.status_code}")
            logger.error(f"Response data: {e.response.text[:500]}")
            return None
        except requests.RequestException as e:
            logger.error(f"Error fetching stories: {e}")
            return None

    def fetch_user_stories(self, max_results: int = 10, email_domain: str = "example.com") -> List[Story]:
        data = self.search_stories(max_results)
        if not data or not data.get("issues"):
            return []

        # Jira only exposes emailAddress when the user's privacy settings allow it
        account_emails: Dict[str, str] = {}
        for issue in data["issues"]:
            account_id = ((issue.get("fields") or {}).get("assignee") or {}).get("accountId")
            if account_id and account_id not in account_emails:
                user = self.fetch_user_by_account_id(account_id) or {}
                account_emails[account_id] = user.get("emailAddress") or user.get("email") or ""

        stories = []
        for issue in data["issues"]:
            fields = issue.get("fields") or {}
            assignee = fields.get("assignee") or {}
            name = assignee.get("displayName") or "Unassigned"
            email = account_emails.get(assignee.get("accountId"), "") or generate_email(name, email_domain)
            stories.append(Story(
                key=issue.get("key") or "Unknown",
                summary=fields.get("summary") or "",
                description=extract_text_from_description(fields.get("description")),
                assignee=name,
                assignee_email=email
            ))
        return stories


def extract_text_from_description(description: Any) -> str:
    """Flatten an Atlassian document description to plain paragraphs."""
    if not description:
        return "No description provided"
    if isinstance(description, str):
        return description

    if isinstance(description, dict) and "content" in description:
        paragraphs = []
        for block in description.get("content") or []:
            if block.get("type") != "paragraph":
                continue
            text = " ".join(item.get("text", "") for item in block.get("content") or [])
            if text:
                paragraphs.append(text)
        return "\n\n".join(paragraphs)

    return "Description format not supported"


def generate_email(display_name: Optional[str], domain: str = "example.com") -> str:
    """
    Derive a first.last@domain address from a Jira display name.

    Dotted names are used as-is; three or more words use the first and last;
    a single word is used for both parts.
    """
    if not display_name or display_name == "Unassigned":
        return ""

    if "." in display_name:
        return f"{display_name.lower()}@{domain}"

    parts = [p for p in display_name.split(" ") if p.strip()]
    if not parts:
        return ""

    if len(parts) >= 2:
        first, last = parts[0], parts[-1]
    else:
        first = last = parts[0]

    first = re.sub(r"[^a-z]", "", first.lower())
    last = re.sub(r"[^a-z]", "", last.lower())
    return f"{first}.{last}@{domain}"


def format_stories(stories: List[Story]) -> str:
    blocks = []
    for index, story in enumerate(stories, start=1):
        blocks.append(
            f"Story {index}:\n"
            f"Key: {story.key}\n"
            f"Assignee: {story.assignee}\n"
            f"AssigneeEmail: {story.assignee_email}\n"
            f"Summary: {story.summary}\n\n"
            f"Description:\n{story.description}\n\n"
            f"{STORY_SEPARATOR}\n"
        )
    return "\n".join(blocks)


def fetch_jira_stories(settings) -> List[Story]:
    """Fetch stories and write the stories file and assignee map."""
    client = JiraClient.from_settings(settings)
    stories = client.fetch_user_stories(settings.jira_max_stories, settings.email_domain)

    if not stories:
        logger.warning("No stories returned.")
        return []

    assignee_map: Dict[str, str] = {}
    for story in stories:
        assignee_map.setdefault(story.assignee, story.assignee_email)

    with open(settings.stories_file, 'w', encoding='utf-8') as f:
        f.write(format_stories(stories))
    with open(settings.assignee_map_file, 'w', encoding='utf-8') as f:
        json.dump(assignee_map, f, indent=2)

    logger.info(f"Found {len(stories)} stories")
    logger.info(f"Stories written to: {settings.stories_file}")
    logger.info(f"Assignee map written to: {settings.assignee_map_file}")
    return stories
