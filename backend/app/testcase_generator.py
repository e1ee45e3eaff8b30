"""
AI Test Case Generator

Reads the stories file, asks an LLM for Positive / Negative / Edge test
cases per story and writes one JSON document per story key.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import List, Optional

import anthropic
import requests

from models import Story

logger = logging.getLogger(__name__)

STORY_SPLIT_PATTERN = re.compile(r'={10,}\s*')
CODE_FENCE_PATTERN = re.compile(r'^```(?:json)?\s*|\s*```$')

DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"


def parse_stories(text: str) -> List[Story]:
    """Parse the stories file written by the Jira fetch step."""
    stories = []
    for part in STORY_SPLIT_PATTERN.split(text):
        part = part.strip()
        if not part:
            continue

        key_match = re.search(r'Key:\s*(.+)', part, re.IGNORECASE)
        summary_match = re.search(r'Summary:\s*([\s\S]*?)(?:\n\n|\nDescription:)', part, re.IGNORECASE)
        desc_index = part.find('Description:')
        description = part[desc_index + len('Description:'):].strip() if desc_index != -1 else ''

        stories.append(Story(
            key=key_match.group(1).strip() if key_match else 'Unknown',
            summary=summary_match.group(1).strip() if summary_match else '',
            description=description
        ))
    return stories


def build_prompt(story: Story) -> str:
    return f"""Generate detailed Positive, Negative, and Edge/Boundary test cases for the following Jira user story.
Return ONLY a JSON array of test case objects, no prose, no markdown, no explanation.
Each object must have:
Id, Description, PreRequisite, StepsToExecute, ExpectedResult, TestCaseType (Positive|Negative|Edge), AutomationPossible (Yes|No).

User Story Key: {story.key}
Summary: {story.summary}

Description:
{story.description}"""


def parse_llm_json(text: str):
    """Parse the model's reply, tolerating a surrounding markdown fence."""
    cleaned = CODE_FENCE_PATTERN.sub('', text.strip())
    return json.loads(cleaned)


class TestCaseGenerator:
    """LLM client for test case synthesis (OpenAI-compatible or Anthropic)."""

    def __init__(self, settings):
        self.settings = settings
        self.api_url = None
        self.model = None
        self.api_type = None
        self.api_key = None

        self._detect_llm()

    def _detect_llm(self):
        """Pick the configured LLM service"""

        # Option 1: OpenAI-compatible endpoint
        if self.settings.llm_api_url:
            self.api_url = self.settings.llm_api_url
            self.model = self.settings.llm_model or DEFAULT_OPENAI_MODEL
            self.api_type = "openai"
            self.api_key = self.settings.llm_api_key
            logger.info(f"Using OpenAI-compatible LLM: {self.api_url} ({self.model})")
            return

        # Option 2: Anthropic
        if self.settings.anthropic_api_key:
            self.model = self.settings.llm_model or DEFAULT_ANTHROPIC_MODEL
            self.api_type = "anthropic"
            self.api_key = self.settings.anthropic_api_key
            logger.info(f"Using Anthropic Claude ({self.model})")
            return

        raise ValueError("No AI service configured! Set OPENAI_API_KEY, LLM_API_URL or ANTHROPIC_API_KEY")

    def _call_llm(self, prompt: str) -> str:
        if self.api_type == "openai":
            return self._call_openai(prompt)
        elif self.api_type == "anthropic":
            return self._call_anthropic(prompt)
        else:
            raise ValueError(f"Unknown API type: {self.api_type}")

    def _call_openai(self, prompt: str) -> str:
        """Call OpenAI-compatible chat completions API"""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.settings.llm_system_role},
                {"role": "user", "content": prompt}
            ],
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.llm_max_tokens
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = requests.post(self.api_url, json=payload, headers=headers, timeout=120)
        response.raise_for_status()
        choices = response.json().get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""

    def _call_anthropic(self, prompt: str) -> str:
        """Call Anthropic Claude API"""
        client = anthropic.Anthropic(api_key=self.api_key)

        message = client.messages.create(
            model=self.model,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            system=self.settings.llm_system_role,
            messages=[{"role": "user", "content": prompt}]
        )
        return "".join(block.text for block in message.content if getattr(block, "type", "") == "text")

    def generate_for_story(self, story: Story, output_dir: Path) -> Path:
        """Generate and save test cases for one story; returns the written file."""
        ai_text = ""
        parsed = None

        try:
            ai_text = self._call_llm(build_prompt(story))
            parsed = parse_llm_json(ai_text)
        except (requests.RequestException, anthropic.APIError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            ai_text = ai_text or f"ERROR: {e}"
            logger.error(f"LLM / JSON parse error for {story.key}: {e}")

        if parsed is not None:
            out_file = output_dir / f"{story.key}_testcases.json"
            with open(out_file, 'w', encoding='utf-8') as f:
                json.dump(parsed, f, indent=2)
            logger.info(f"Saved {out_file}")
            return out_file

        raw_file = output_dir / f"{story.key}_testcases_raw.txt"
        with open(raw_file, 'w', encoding='utf-8') as f:
            f.write(ai_text)
        logger.warning(f"Saved raw output to {raw_file}")
        return raw_file

    def generate_from_stories(self, input_file: Optional[str] = None, output_dir: Optional[str] = None) -> List[Path]:
        input_file = input_file or self.settings.stories_file
        out_dir = Path(output_dir or self.settings.testcases_dir)

        logger.info(f"Using input: {input_file}")
        logger.info(f"Output directory: {out_dir}")
        logger.info(f"Model: {self.model}")

        with open(input_file, 'r', encoding='utf-8') as f:
            stories = parse_stories(f.read())

        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for i, story in enumerate(stories):
            logger.info(f"Generating test cases for {story.key} ({i + 1}/{len(stories)})")
            written.append(self.generate_for_story(story, out_dir))

            if i < len(stories) - 1:
                time.sleep(self.settings.request_delay_ms / 1000)

        return written
