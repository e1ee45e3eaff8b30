"""
Step Runner Module

Interprets AI-generated natural-language test steps and executes them
against a web application with Playwright.
"""

from .alias_map import UIAliasMap, AliasEntry
from .selector_resolver import SelectorResolver, ResolveResult
from .step_classifier import StepClassifier, ActionKind, Classification
from .session_guard import SessionGuard
from .step_executor import StepExecutor, StepOutcome, StepStatus, HardStepFailure
from .test_case_runner import TestCaseRunner, load_test_cases

__all__ = [
    "UIAliasMap",
    "AliasEntry",
    "SelectorResolver",
    "ResolveResult",
    "StepClassifier",
    "ActionKind",
    "Classification",
    "SessionGuard",
    "StepExecutor",
    "StepOutcome",
    "StepStatus",
    "HardStepFailure",
    "TestCaseRunner",
    "load_test_cases"
]
