"""
Mail the converted TXT test cases to each story's assignee.
"""

import json
import logging
import re
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


def parse_story_assignees(
    stories_text: str,
    assignee_map: Dict[str, str],
    fallback_email: Optional[str] = None
) -> Dict[str, Dict[str, Optional[str]]]:
    """Map story key -> {assignee, email} from the stories file."""
    story_data = {}
    for block in re.split(r'={5,}', stories_text):
        key_match = re.search(r'Key:\s*(.*)', block)
        if not key_match:
            continue

        assignee_match = re.search(r'Assignee:\s*(.*)', block)
        assignee = assignee_match.group(1).strip() if assignee_match else None
        email = (assignee_map.get(assignee) or fallback_email) if assignee else fallback_email

        story_data[key_match.group(1).strip()] = {"assignee": assignee, "email": email}
    return story_data


def collect_story_files(txt_dir: Union[str, Path], key_pattern: str) -> Dict[str, List[Path]]:
    """Group files in txt_dir by the story key found in their name."""
    pattern = re.compile(key_pattern, re.IGNORECASE)
    story_files: Dict[str, List[Path]] = {}
    for path in sorted(Path(txt_dir).iterdir()):
        match = pattern.search(path.name)
        if match:
            story_files.setdefault(match.group(1), []).append(path)
    return story_files


def subject_for(story_key: str, first_file: Path) -> str:
    """Subject line; includes the first test case Id when the file starts with one."""
    try:
        with open(first_file, 'r', encoding='utf-8') as f:
            first_line = f.readline().strip()
    except OSError:
        logger.warning(f"Could not read subject from {first_file}, using default subject.")
        first_line = ""

    if first_line.startswith("Id:"):
        return f"AI-Generated Test Cases - {story_key} - {first_line[len('Id:'):].strip()}"
    return f"AI-Generated Test Cases for {story_key}"


def build_message(sender: str, recipient: str, story_key: str, files: List[Path], subject: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = f'"QA Automation Bot" <{sender}>'
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(
        f"Hello,\n\nPlease find attached the AI-generated test cases for Jira story {story_key}."
        f"\n\nRegards,\nQA Automation Bot"
    )
    for path in files:
        message.add_attachment(path.read_bytes(), maintype="text", subtype="plain", filename=path.name)
    return message


def send_emails_from_txt(settings, txt_dir: Optional[str] = None) -> int:
    """Send one mail per story with its TXT files attached; returns mails sent."""
    if not settings.smtp_user or not settings.smtp_pass:
        raise ValueError("Missing SMTP_USER or SMTP_PASS")

    stories_path = Path(settings.stories_file)
    if not stories_path.exists():
        raise FileNotFoundError(f"Stories file not found: {stories_path}")

    assignee_map = {}
    if Path(settings.assignee_map_file).exists():
        with open(settings.assignee_map_file, 'r', encoding='utf-8') as f:
            assignee_map = json.load(f)

    story_data = parse_story_assignees(stories_path.read_text(encoding='utf-8'), assignee_map, settings.fallback_email)
    story_files = collect_story_files(txt_dir or settings.txt_dir, settings.story_key_pattern)

    sent = 0
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
        smtp.starttls()
        smtp.login(settings.smtp_user, settings.smtp_pass)

        for story_key, files in story_files.items():
            info = story_data.get(story_key)
            if not info:
                logger.warning(f"{story_key} not found in {stories_path.name}, skipping.")
                continue
            if not info["email"]:
                logger.warning(f"No email for {story_key} (Assignee: {info['assignee']}), skipping.")
                continue

            subject = subject_for(story_key, files[0])
            smtp.send_message(build_message(settings.smtp_user, info["email"], story_key, files, subject))
            sent += 1
            logger.info(f"Sent to {info['email']} | {story_key} | Subject: {subject} | Attached: {len(files)} file(s)")

    logger.info("All emails processed.")
    return sent
