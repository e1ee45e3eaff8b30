"""
Unit tests for StepClassifier.

Covers the priority order of the rule table and the target extraction
for each action kind.
"""

import pytest

from runner.step_classifier import (
    ActionKind,
    CLASSIFIER_RULES,
    DEFAULT_COMPOSE_TEXT,
    MAX_ATTEMPT_DEPTH,
    StepClassifier,
    classify,
    tokenize,
)


class TestRuleOrder:

    def test_dispatch_order(self):
        assert [rule.kind for rule in CLASSIFIER_RULES] == [
            ActionKind.NAVIGATE,
            ActionKind.SELECT,
            ActionKind.COMPOSE,
            ActionKind.SUBMIT,
            ActionKind.OBSERVE,
            ActionKind.CLICK,
            ActionKind.FILTER,
            ActionKind.ATTEMPT,
        ]


class TestNavigate:
    """Navigation steps."""

    def test_navigate_to_dashboard(self):
        result = classify("Navigate to the Dashboard")

        assert result.kind == ActionKind.NAVIGATE
        assert result.target == "dashboard"

    def test_go_to_strips_keyword(self):
        result = classify("Go to Reports section")

        assert result.kind == ActionKind.NAVIGATE
        assert result.target == "reports section"

    def test_navigate_wins_over_later_verbs(self):
        """First matching rule decides, not the 'main' verb."""
        result = classify("Open the form and click submit")

        assert result.kind == ActionKind.NAVIGATE


class TestSelect:
    """Dropdown selection steps."""

    def test_select_option_before_from(self):
        result = classify("Select WhatsApp from the channel dropdown")

        assert result.kind == ActionKind.SELECT
        assert result.target == "whatsapp"

    def test_select_specific_option(self):
        result = classify("Select a specific category in the list")

        assert result.kind == ActionKind.SELECT
        assert result.target == "category"

    def test_choose_without_select_word_has_no_target(self):
        result = classify("Choose the marketing template")

        assert result.kind == ActionKind.SELECT
        assert result.target == ""


class TestCompose:
    """Text entry steps."""

    def test_quoted_text_is_kept_verbatim(self):
        result = classify('Enter "Hello World" in the message box')

        assert result.kind == ActionKind.COMPOSE
        assert result.target == "Hello World"

    def test_unquoted_text_is_remainder(self):
        result = classify("Enter a message")

        assert result.kind == ActionKind.COMPOSE
        assert result.target == "a message"

    def test_bare_verb_uses_default_text(self):
        result = classify("Type")

        assert result.kind == ActionKind.COMPOSE
        assert result.target == DEFAULT_COMPOSE_TEXT


class TestSubmit:
    """Submit steps and their guard."""

    def test_click_send_is_submit(self):
        """Submit is checked before Click."""
        result = classify("Click the Send button")

        assert result.kind == ActionKind.SUBMIT
        assert result.target == ""

    def test_sent_assertion_is_not_submit(self):
        result = classify("Send the message and verify the message is sent")

        assert result.kind == ActionKind.OBSERVE

    def test_save(self):
        assert classify("Save the changes").kind == ActionKind.SUBMIT


class TestObserveClickFilter:
    """Observation, click and filter steps."""

    def test_observe_strips_filler(self):
        result = classify("Observe the dashboard")

        assert result.kind == ActionKind.OBSERVE
        assert result.target == "dashboard"

    def test_verify_that(self):
        result = classify("Verify that delivery report is visible")

        assert result.kind == ActionKind.OBSERVE
        assert result.target == "delivery report is visible"

    def test_click_on(self):
        result = classify("Click on Reports")

        assert result.kind == ActionKind.CLICK
        assert result.target == "reports"

    def test_press_the(self):
        result = classify("Press the Export button")

        assert result.kind == ActionKind.CLICK
        assert result.target == "export button"

    def test_filter(self):
        result = classify("Apply filter by date")

        assert result.kind == ActionKind.FILTER
        assert result.target == "filter"


class TestAttemptAndUnknown:
    """Attempt unwrapping and the fallback kind."""

    def test_attempt_unwraps_to_remainder(self):
        result = classify('Attempt to upload "report.csv"')

        assert result.kind == ActionKind.UNKNOWN
        assert result.attempt_depth == 1
        assert result.instruction == 'upload "report.csv"'

    def test_attempt_with_action_verb_is_that_action(self):
        result = classify("Attempt to send an empty message")

        assert result.kind == ActionKind.SUBMIT
        assert result.attempt_depth == 0

    def test_attempt_depth_is_capped(self):
        instruction = "attempt to " * (MAX_ATTEMPT_DEPTH + 1) + "scroll down"

        result = classify(instruction)

        assert result.kind == ActionKind.UNKNOWN
        assert result.attempt_depth == MAX_ATTEMPT_DEPTH

    def test_custom_depth(self):
        classifier = StepClassifier(max_attempt_depth=1)

        result = classifier.classify("attempt to attempt to scroll")

        assert result.kind == ActionKind.UNKNOWN
        assert result.attempt_depth == 1

    def test_unknown(self):
        result = classify("Wait for the page to load")

        assert result.kind == ActionKind.UNKNOWN
        assert result.target == ""

    @pytest.mark.parametrize("instruction,is_action", [
        ("Navigate to the Dashboard", True),
        ("Click on Reports", True),
        ("Observe the dashboard", False),
        ("Wait for the page to load", False),
    ])
    def test_is_action(self, instruction, is_action):
        assert classify(instruction).is_action is is_action


class TestTokenize:
    """Keyword tokenization."""

    def test_keeps_hyphenated_words(self):
        assert tokenize("select e-mail channel") == ["select", "e-mail", "channel"]

    def test_keywords_attached_to_classification(self):
        result = classify("Select WhatsApp channel")

        assert "whatsapp" in result.keywords
        assert "channel" in result.keywords
