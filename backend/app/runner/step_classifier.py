"""
Step Classifier

Maps a free-text test step ("Enter "Hello" in the message box") onto an
action kind plus the phrase the action targets.

Rules are evaluated in the fixed order of CLASSIFIER_RULES and the first
match wins. An instruction that mentions several verbs ("Open the form and
click submit") is therefore classified by whichever rule comes first, not
by any notion of the "main" verb.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Pattern

# Configure logging
logger = logging.getLogger(__name__)


class ActionKind(Enum):
    """What a step asks the browser to do"""
    NAVIGATE = "navigate"
    SELECT = "select"
    COMPOSE = "compose"
    SUBMIT = "submit"
    OBSERVE = "observe"
    CLICK = "click"
    FILTER = "filter"
    ATTEMPT = "attempt"
    UNKNOWN = "unknown"


# "Attempt to attempt to ..." is unwrapped at most this many times
MAX_ATTEMPT_DEPTH = 3

DEFAULT_COMPOSE_TEXT = "Test message content"

NAVIGATE_KEYWORDS = ['navigate to', 'go to', 'open the', 'open', 'access the', 'access', 'visit']
COMPOSE_KEYWORDS = ['compose a', 'type', 'enter', 'fill', 'input', 'write', 'containing']
OBSERVE_KEYWORDS = ['observe', 'check', 'review', 'verify', 'validate', 'confirm']
CLICK_KEYWORDS = ['click on', 'click', 'press', 'tap']

SELECT_OPTION_PATTERN = re.compile(r'select\s+(?:a\s+)?(?:specific\s+)?(.+?)(?:\s+from|\s+in|\s+as|$)')
QUOTED_TEXT_PATTERN = re.compile(r'"([^"]+)"')
LEADING_ARTICLE = re.compile(r'^(the|a|an)\s+')
LEADING_OBSERVE_FILLER = re.compile(r'^(the|if|that|whether)\s+')

ATTEMPT_PREFIX = 'attempt to'
SENT_ASSERTION = 'message is sent'


@dataclass
class Classification:
    """Result of classifying one instruction"""
    kind: ActionKind
    target: str
    instruction: str
    normalized: str
    attempt_depth: int = 0
    keywords: List[str] = field(default_factory=list)

    @property
    def is_action(self) -> bool:
        """Steps whose failure can fail a test case"""
        return self.kind not in (ActionKind.OBSERVE, ActionKind.UNKNOWN)


WORD_PATTERN = re.compile(r"[\w-]+")


def tokenize(normalized: str) -> List[str]:
    return WORD_PATTERN.findall(normalized)


def _strip_keywords(text: str, keywords: List[str]) -> str:
    # Each keyword is removed once, in list order
    for kw in keywords:
        text = text.replace(kw, '', 1).strip()
    return text


def extract_navigation_target(instruction: str, normalized: str) -> str:
    target = _strip_keywords(normalized, NAVIGATE_KEYWORDS)
    return LEADING_ARTICLE.sub('', target)


def extract_select_option(instruction: str, normalized: str) -> str:
    match = SELECT_OPTION_PATTERN.search(normalized)
    return match.group(1).strip() if match else ''


def extract_compose_text(instruction: str, normalized: str) -> str:
    """Quoted text wins, verbatim; otherwise whatever is left of the step."""
    quoted = QUOTED_TEXT_PATTERN.search(instruction)
    if quoted:
        return quoted.group(1)
    return _strip_keywords(normalized, COMPOSE_KEYWORDS) or DEFAULT_COMPOSE_TEXT


def extract_observe_target(instruction: str, normalized: str) -> str:
    target = _strip_keywords(normalized, OBSERVE_KEYWORDS)
    return LEADING_OBSERVE_FILLER.sub('', target)


def extract_click_target(instruction: str, normalized: str) -> str:
    target = _strip_keywords(normalized, CLICK_KEYWORDS)
    return LEADING_ARTICLE.sub('', target)


def extract_attempt_remainder(instruction: str, normalized: str) -> str:
    text = instruction.strip()
    index = text.lower().find(ATTEMPT_PREFIX)
    if index < 0:
        return text
    # Cut from the original-case text so quoted literals survive the unwrap
    return (text[:index] + text[index + len(ATTEMPT_PREFIX):]).strip()


def _no_target(instruction: str, normalized: str) -> str:
    return ''


def _submit_guard(normalized: str) -> bool:
    return SENT_ASSERTION not in normalized


@dataclass(frozen=True)
class ClassifierRule:
    """One entry of the priority dispatch table"""
    kind: ActionKind
    pattern: Pattern
    extract: Callable[[str, str], str]
    guard: Optional[Callable[[str], bool]] = None

    def matches(self, normalized: str) -> bool:
        if not self.pattern.search(normalized):
            return False
        return self.guard is None or self.guard(normalized)


CLASSIFIER_RULES: List[ClassifierRule] = [
    ClassifierRule(ActionKind.NAVIGATE, re.compile(r'\b(navigate|go to|open|access|visit)\b'), extract_navigation_target),
    ClassifierRule(ActionKind.SELECT, re.compile(r'\b(select|choose|pick)\b'), extract_select_option),
    ClassifierRule(ActionKind.COMPOSE, re.compile(r'\b(compose|type|enter|fill|input|write)\b'), extract_compose_text),
    ClassifierRule(ActionKind.SUBMIT, re.compile(r'\b(send|submit|save)\b'), _no_target, guard=_submit_guard),
    ClassifierRule(ActionKind.OBSERVE, re.compile(r'\b(observe|check|review|verify|validate|confirm)\b'), extract_observe_target),
    ClassifierRule(ActionKind.CLICK, re.compile(r'\b(click|press|tap)\b'), extract_click_target),
    ClassifierRule(ActionKind.FILTER, re.compile(r'\bfilter\b'), lambda instruction, normalized: 'filter'),
    ClassifierRule(ActionKind.ATTEMPT, re.compile(re.escape(ATTEMPT_PREFIX)), extract_attempt_remainder),
]


class StepClassifier:
    """Priority-ordered keyword classifier for natural-language steps."""

    def __init__(self, rules: Optional[List[ClassifierRule]] = None, max_attempt_depth: int = MAX_ATTEMPT_DEPTH):
        self.rules = rules if rules is not None else CLASSIFIER_RULES
        self.max_attempt_depth = max_attempt_depth

    def classify(self, instruction: str, attempt_depth: int = 0) -> Classification:
        """
        Classify an instruction.

        "attempt to X" is unwrapped and X is classified in its place, so the
        returned kind is never ATTEMPT.
        """
        normalized = instruction.lower().strip()

        for rule in self.rules:
            if not rule.matches(normalized):
                continue

            target = rule.extract(instruction, normalized)

            if rule.kind == ActionKind.ATTEMPT:
                if attempt_depth >= self.max_attempt_depth:
                    logger.warning(f"Attempt nesting deeper than {self.max_attempt_depth}: '{instruction}'")
                    break
                return self.classify(target, attempt_depth + 1)

            return Classification(
                kind=rule.kind,
                target=target,
                instruction=instruction,
                normalized=normalized,
                attempt_depth=attempt_depth,
                keywords=tokenize(normalized)
            )

        return Classification(
            kind=ActionKind.UNKNOWN,
            target='',
            instruction=instruction,
            normalized=normalized,
            attempt_depth=attempt_depth,
            keywords=tokenize(normalized)
        )


def classify(instruction: str) -> Classification:
    """Classify with the default rule table."""
    return StepClassifier().classify(instruction)
