"""
Unit tests for mailing converted test cases.
"""

import json

import pytest
from unittest.mock import patch

from email_sender import (
    build_message,
    collect_story_files,
    parse_story_assignees,
    send_emails_from_txt,
    subject_for,
)
from jira_client import format_stories
from models import Story

KEY_PATTERN = r"([A-Z][A-Z0-9]+-\d+)"


@pytest.fixture
def stories_text():
    return format_stories([
        Story(key="ABC-1", assignee="Jane Doe", assignee_email="jane.doe@acme.com"),
        Story(key="ABC-2", assignee="Unknown Person"),
    ])


@pytest.fixture
def smtp_settings(settings, tmp_path, stories_text):
    txt_dir = tmp_path / "email_outputs"
    txt_dir.mkdir()
    (txt_dir / "ABC-1_testcases.txt").write_text("Id: TC-1\nDescription: x\n")
    (txt_dir / "ABC-2_testcases.txt").write_text("Id: TC-2\n")
    (txt_dir / "ABC-9_testcases.txt").write_text("Id: TC-9\n")

    with open(settings.stories_file, "w", encoding="utf-8") as f:
        f.write(stories_text)
    with open(settings.assignee_map_file, "w", encoding="utf-8") as f:
        json.dump({"Jane Doe": "jane.doe@acme.com"}, f)

    return settings.model_copy(update={
        "smtp_host": "smtp.acme.com",
        "smtp_user": "bot@acme.com",
        "smtp_pass": "pw"
    })


class TestParsing:

    def test_assignees_from_map_with_fallback(self, stories_text):
        data = parse_story_assignees(stories_text, {"Jane Doe": "jane.doe@acme.com"}, "qa-lead@acme.com")

        assert data["ABC-1"] == {"assignee": "Jane Doe", "email": "jane.doe@acme.com"}
        assert data["ABC-2"] == {"assignee": "Unknown Person", "email": "qa-lead@acme.com"}

    def test_no_fallback(self, stories_text):
        data = parse_story_assignees(stories_text, {})

        assert data["ABC-2"]["email"] is None

    def test_collect_story_files(self, tmp_path):
        (tmp_path / "ABC-1_testcases.txt").write_text("")
        (tmp_path / "ABC-1_extra.txt").write_text("")
        (tmp_path / "notes.txt").write_text("")

        files = collect_story_files(tmp_path, KEY_PATTERN)

        assert list(files) == ["ABC-1"]
        assert [p.name for p in files["ABC-1"]] == ["ABC-1_extra.txt", "ABC-1_testcases.txt"]


class TestMessage:

    def test_subject_includes_first_id(self, tmp_path):
        path = tmp_path / "ABC-1_testcases.txt"
        path.write_text("Id: TC-7\n")

        assert subject_for("ABC-1", path) == "AI-Generated Test Cases - ABC-1 - TC-7"

    def test_subject_default(self, tmp_path):
        path = tmp_path / "ABC-1_testcases.txt"
        path.write_text("Description: x\n")

        assert subject_for("ABC-1", path) == "AI-Generated Test Cases for ABC-1"

    def test_attachments(self, tmp_path):
        path = tmp_path / "ABC-1_testcases.txt"
        path.write_text("Id: TC-1\n")

        message = build_message("bot@acme.com", "jane@acme.com", "ABC-1", [path], "Subject")

        attachments = list(message.iter_attachments())
        assert message["To"] == "jane@acme.com"
        assert [a.get_filename() for a in attachments] == ["ABC-1_testcases.txt"]


class TestSendEmails:

    def test_sends_one_mail_per_known_story(self, smtp_settings):
        with patch("email_sender.smtplib.SMTP") as smtp_cls:
            sent = send_emails_from_txt(smtp_settings)

        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot@acme.com", "pw")
        # ABC-2 has no address and ABC-9 is not in the stories file
        assert sent == 1
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "jane.doe@acme.com"
        assert message["Subject"] == "AI-Generated Test Cases - ABC-1 - TC-1"

    def test_missing_credentials(self, settings):
        with pytest.raises(ValueError):
            send_emails_from_txt(settings)

    def test_missing_stories_file(self, smtp_settings, tmp_path):
        settings = smtp_settings.model_copy(update={"stories_file": str(tmp_path / "missing.txt")})

        with pytest.raises(FileNotFoundError):
            send_emails_from_txt(settings)
