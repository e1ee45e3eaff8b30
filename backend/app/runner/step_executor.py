"""
Step Executor

Turns one natural-language step into browser actions:

    session check -> classify -> resolve selectors -> act -> (verify)

Selector misses and interaction timeouts are absorbed: the step is logged
as skipped and the scenario moves on. Any other Playwright error raised
while acting on an action-kind step is escalated as HardStepFailure, and
the test-case runner decides what that means for the case.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .alias_map import AliasRule, UIAliasMap, alias_candidates
from .diagnostics import Diagnostics
from .selector_resolver import SelectorResolver
from .session_guard import SessionGuard
from .step_classifier import ActionKind, Classification, StepClassifier

# Configure logging
logger = logging.getLogger(__name__)


class ExecutorState(Enum):
    """Where the executor is within the current step"""
    IDLE = "idle"
    SESSION_CHECKING = "session_checking"
    CLASSIFYING = "classifying"
    RESOLVING = "resolving"
    ACTING = "acting"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


class StepStatus(Enum):
    """Outcome of a single step"""
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """Result of executing one step"""
    status: StepStatus
    kind: ActionKind
    instruction: str
    step_index: int
    target: str = ""
    selector: Optional[str] = None
    screenshot_path: Optional[str] = None
    error_message: Optional[str] = None
    execution_time_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED


class HardStepFailure(Exception):
    """An action step failed in a way the executor could not absorb."""

    def __init__(self, step_index: int, instruction: str, kind: ActionKind, cause: Exception):
        self.step_index = step_index
        self.instruction = instruction
        self.kind = kind
        self.cause = cause
        message = getattr(cause, "message", None) or str(cause)
        super().__init__(f"Step {step_index + 1} ({kind.value}) failed: {message}")


# ==================== Selector tables ====================

WHATSAPP_WORDS = frozenset({'whatsapp', 'messaging', 'message', 'channel'})
WABA_WORDS = frozenset({'waba', 'category', 'selection'})

NAVIGATION_ALIASES: List[AliasRule] = [
    AliasRule("whatsapp.messagingInterface", WHATSAPP_WORDS, frozenset({'interface', 'messaging'})),
    AliasRule("whatsapp.sendButton", WHATSAPP_WORDS, frozenset({'send', 'submit'})),
    AliasRule("whatsapp.messageInput", WHATSAPP_WORDS, frozenset({'input', 'compose'})),
    AliasRule("whatsapp.reportingDashboard", WHATSAPP_WORDS, frozenset({'report', 'dashboard'})),
    AliasRule("waba.wabaSelectionScreen", WABA_WORDS, frozenset({'screen', 'selection'})),
    AliasRule("waba.categoryDropdown", WABA_WORDS, frozenset({'category'})),
]

SELECT_ALIASES: List[AliasRule] = [
    AliasRule("whatsapp.channelDropdown", frozenset({'whatsapp', 'channel'})),
    AliasRule("waba.categoryDropdown", frozenset({'category'})),
    AliasRule("waba.wabaDropdown", frozenset({'waba'})),
]

COMPOSE_ALIASES: List[AliasRule] = [
    AliasRule("whatsapp.messageInput", frozenset({'whatsapp', 'message'})),
]

SUBMIT_ALIASES: List[AliasRule] = [
    AliasRule("whatsapp.sendButton", frozenset({'send', 'message'})),
    AliasRule("common.submitButton"),
]

DROPDOWN_SELECTORS = [
    'select',
    '[role="combobox"]',
    '[role="listbox"]',
    'input[list]',
    '.select',
    '.dropdown'
]

INPUT_SELECTORS = [
    'textarea:visible',
    'input[type="text"]:visible',
    '[contenteditable="true"]',
    '[role="textbox"]',
    'input:not([type="hidden"]):not([type="submit"]):not([type="button"]):visible'
]

SUBMIT_BUTTON_TEXTS = ['send', 'submit', 'save', 'ok', 'confirm', 'apply']


def navigation_selectors(target: str) -> List[str]:
    return [
        f'a:has-text("{target}")',
        f'button:has-text("{target}")',
        f'[role="link"]:has-text("{target}")',
        f'[role="button"]:has-text("{target}")',
        f'nav >> text={target}',
        f'[href*="{"-".join(target.split())}"]',
        f'text={target}'
    ]


def submit_button_selectors() -> List[str]:
    selectors = []
    for text in SUBMIT_BUTTON_TEXTS:
        selectors.append(f'button:has-text("{text}")')
        selectors.append(f'button:has-text("{text.upper()}")')
    selectors.append('button[type="submit"]')
    return selectors


def click_selectors(target: str) -> List[str]:
    return [
        f'button:has-text("{target}")',
        f'a:has-text("{target}")',
        f'[role="button"]:has-text("{target}")',
        f'text={target}'
    ]


class StepExecutor:
    """
    Executes natural-language steps against one Playwright page.

    Holds no state between steps beyond the page/context handles; the
    state attribute only reflects progress through the current step.
    """

    DEFAULT_ACTION_TIMEOUT = 5000
    DEFAULT_VERIFY_TIMEOUT = 5000
    DEFAULT_NETWORK_IDLE_TIMEOUT = 10000
    OPTION_TIMEOUT = 3000
    DROPDOWN_SETTLE_MS = 500
    MIN_OBSERVE_TARGET = 5
    MIN_PARTIAL_WORD = 3

    def __init__(
        self,
        page=None,
        alias_map: Optional[UIAliasMap] = None,
        session_guard: Optional[SessionGuard] = None,
        context=None,
        resolver: Optional[SelectorResolver] = None,
        classifier: Optional[StepClassifier] = None,
        diagnostics: Optional[Diagnostics] = None,
        session_check_interval: int = 3
    ):
        """
        Initialize step executor.

        Args:
            page: Playwright page object
            alias_map: UI alias map consulted before generic selectors
            session_guard: re-authenticates when the login page shows up
            context: Browser context, used to persist a refreshed session
            resolver: SelectorResolver (created for page if omitted)
            classifier: StepClassifier (default rule table if omitted)
            diagnostics: screenshot helper
            session_check_interval: check the session every N steps
        """
        self.page = page
        self.context = context
        self.alias_map = alias_map
        self.session_guard = session_guard
        self.resolver = resolver or SelectorResolver(page)
        self.classifier = classifier or StepClassifier()
        self.diagnostics = diagnostics or Diagnostics()
        self.session_check_interval = session_check_interval

        # Configuration
        self.action_timeout = self.DEFAULT_ACTION_TIMEOUT
        self.verify_timeout = self.DEFAULT_VERIFY_TIMEOUT
        self.network_idle_timeout = self.DEFAULT_NETWORK_IDLE_TIMEOUT

        self.state = ExecutorState.IDLE

        self._handlers: Dict[ActionKind, Callable[[Classification, int, Optional[str]], Awaitable[StepOutcome]]] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.SELECT: self._select,
            ActionKind.COMPOSE: self._compose,
            ActionKind.SUBMIT: self._submit,
            ActionKind.OBSERVE: self._observe,
            ActionKind.CLICK: self._click,
            ActionKind.FILTER: self._filter,
            ActionKind.UNKNOWN: self._unknown,
        }

    @classmethod
    def from_settings(cls, settings, page, context=None, alias_map: Optional[UIAliasMap] = None) -> "StepExecutor":
        executor = cls(
            page=page,
            alias_map=alias_map,
            session_guard=SessionGuard.from_settings(settings),
            context=context,
            resolver=SelectorResolver(page, timeout=settings.resolve_timeout_ms),
            diagnostics=Diagnostics(settings.diagnostics_dir),
            session_check_interval=settings.session_check_interval
        )
        executor.action_timeout = settings.action_timeout_ms
        executor.verify_timeout = settings.verify_timeout_ms
        executor.network_idle_timeout = settings.network_idle_timeout_ms
        return executor

    def set_page(self, page, context=None):
        """Set the Playwright page (and optionally context)"""
        self.page = page
        self.resolver.set_page(page)
        if context is not None:
            self.context = context

    # ==================== Entry point ====================

    async def execute(self, instruction: str, step_index: int, case_id: Optional[str] = None) -> StepOutcome:
        """
        Execute one step.

        Returns a StepOutcome for passed and skipped steps.

        Raises:
            HardStepFailure: an action step's interaction raised a
                non-timeout Playwright error
        """
        start_time = datetime.utcnow()
        self.state = ExecutorState.IDLE
        logger.info(f"Step {step_index + 1}: {instruction}")

        if self.page.is_closed():
            logger.warning("Page is closed, skipping step")
            self.state = ExecutorState.DONE
            return StepOutcome(StepStatus.SKIPPED, ActionKind.UNKNOWN, instruction, step_index,
                               error_message="page closed")

        await self._wait_for_dom()
        await self._check_session(step_index)

        self.state = ExecutorState.CLASSIFYING
        classification = self.classifier.classify(instruction)
        if classification.attempt_depth:
            logger.info(f"Attempting: {classification.instruction}")
        logger.debug(f"Classified as {classification.kind.value}, target '{classification.target}'")

        handler = self._handlers[classification.kind]

        try:
            outcome = await handler(classification, step_index, case_id)
        except PlaywrightTimeoutError as e:
            logger.warning(f"Action timed out, skipping step: {e.message}")
            outcome = self._outcome(StepStatus.SKIPPED, classification, step_index, error_message=e.message)
        except PlaywrightError as e:
            if not classification.is_action:
                logger.warning(f"Could not complete {classification.kind.value} step: {e.message}")
                outcome = self._outcome(StepStatus.SKIPPED, classification, step_index, error_message=e.message)
            else:
                self.state = ExecutorState.FAILED
                raise HardStepFailure(step_index, instruction, classification.kind, e) from e

        outcome.execution_time_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)
        self.state = ExecutorState.DONE
        return outcome

    # ==================== Session / page readiness ====================

    async def _check_session(self, step_index: int):
        if self.session_guard is None or self.session_check_interval <= 0:
            return
        if step_index % self.session_check_interval != 0:
            return

        self.state = ExecutorState.SESSION_CHECKING
        restored = await self.session_guard.ensure_logged_in(self.page, self.context)
        if not restored:
            # Carry on; the step will most likely fail on its own
            logger.error("Session could not be restored, continuing with step")

    async def _wait_for_dom(self):
        try:
            await self.page.wait_for_load_state("domcontentloaded")
        except PlaywrightError:
            pass

    async def _wait_for_network_idle(self):
        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.network_idle_timeout)
        except PlaywrightError:
            logger.debug("Network idle wait timed out, continuing")

    def _outcome(self, status: StepStatus, classification: Classification, step_index: int, **kwargs) -> StepOutcome:
        return StepOutcome(
            status=status,
            kind=classification.kind,
            instruction=classification.instruction,
            step_index=step_index,
            target=classification.target,
            **kwargs
        )

    def _miss(self, classification: Classification, step_index: int, message: str) -> StepOutcome:
        logger.warning(message)
        return self._outcome(StepStatus.SKIPPED, classification, step_index, error_message=message)

    # ==================== Action handlers ====================

    async def _navigate(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        target = c.target
        if not target:
            return self._miss(c, step_index, "Navigation step has no target")

        logger.info(f"Looking for navigation element: \"{target}\"")

        self.state = ExecutorState.RESOLVING
        aliases = alias_candidates(self.alias_map, NAVIGATION_ALIASES, target.split())
        result = await self.resolver.first_success(aliases, navigation_selectors(target))

        partial = False
        if not result.found:
            # text=<word> may already be in the generic chain for one-word targets
            partials = [f"text={w}" for w in target.split() if len(w) > self.MIN_PARTIAL_WORD]
            result = await self.resolver.resolve([sel for sel in partials if sel not in result.tried])
            partial = result.found

        if not result.found:
            return self._miss(c, step_index, f"Could not find navigation element for: {target}")

        self.state = ExecutorState.ACTING
        await result.locator.click(timeout=self.action_timeout)
        await self._wait_for_network_idle()

        if partial:
            logger.info(f"Navigated successfully using partial match: {result.selector}")
        else:
            logger.info("Navigated successfully")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=result.selector)

    async def _select(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        option = c.target
        if not option:
            return self._miss(c, step_index, "No option text found in select step")

        logger.info(f"Looking for dropdown option: \"{option}\"")

        self.state = ExecutorState.RESOLVING
        aliases = alias_candidates(self.alias_map, SELECT_ALIASES, c.keywords)
        dropdown = await self.resolver.first_success(aliases, DROPDOWN_SELECTORS)

        if dropdown.found:
            self.state = ExecutorState.ACTING
            tag_name = await dropdown.locator.evaluate("el => el.tagName")

            if str(tag_name).upper() == "SELECT":
                try:
                    await dropdown.locator.select_option(label=option, timeout=self.action_timeout)
                except PlaywrightError:
                    await dropdown.locator.select_option(value=option, timeout=self.action_timeout)
            else:
                await dropdown.locator.click(timeout=self.action_timeout)
                await self.page.wait_for_timeout(self.DROPDOWN_SETTLE_MS)
                choice = await self.resolver.resolve([f"text={option}"], timeout=self.OPTION_TIMEOUT)
                if not choice.found:
                    return self._miss(c, step_index, f"Dropdown opened but option not visible: {option}")
                await choice.locator.click(timeout=self.action_timeout)

            logger.info(f"Selected: {option}")
            return self._outcome(StepStatus.PASSED, c, step_index, selector=dropdown.selector)

        # No dropdown at all, the option may be a plain clickable label
        self.state = ExecutorState.RESOLVING
        text_option = await self.resolver.resolve([f"text={option}"])
        if not text_option.found:
            return self._miss(c, step_index, f"Could not select: {option}")

        self.state = ExecutorState.ACTING
        await text_option.locator.click(timeout=self.action_timeout)
        logger.info("Clicked option")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=text_option.selector)

    async def _compose(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        text = c.target
        logger.info(f"Looking for input field to enter: \"{text[:50]}\"")

        self.state = ExecutorState.RESOLVING
        aliases = alias_candidates(self.alias_map, COMPOSE_ALIASES, c.keywords)
        result = await self.resolver.first_success(aliases, INPUT_SELECTORS)

        if not result.found:
            return self._miss(c, step_index, "Could not find input field")

        self.state = ExecutorState.ACTING
        try:
            await result.locator.clear(timeout=self.action_timeout)
        except PlaywrightError:
            pass  # contenteditable and some custom inputs can't be cleared
        await result.locator.fill(text, timeout=self.action_timeout)

        logger.info("Entered text successfully")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=result.selector)

    async def _submit(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        logger.info("Looking for submit/send button")

        self.state = ExecutorState.RESOLVING
        aliases = alias_candidates(self.alias_map, SUBMIT_ALIASES, c.keywords)
        result = await self.resolver.first_success(aliases, submit_button_selectors())

        if not result.found:
            return self._miss(c, step_index, "Could not find submit button")

        self.state = ExecutorState.ACTING
        await result.locator.click(timeout=self.action_timeout)
        await self._wait_for_network_idle()

        logger.info("Clicked submit button")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=result.selector)

    async def _observe(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        target = c.target

        if len(target) <= self.MIN_OBSERVE_TARGET:
            logger.info("Observation step - taking screenshot")
            path = await self.diagnostics.capture(self.page, "observation", case_id, step_index + 1)
            return self._outcome(StepStatus.PASSED, c, step_index, screenshot_path=path)

        logger.info(f"Verifying presence of: \"{target}\"")

        self.state = ExecutorState.VERIFYING
        selector = f"text={target}"
        if await self.resolver.is_visible(selector, timeout=self.verify_timeout):
            logger.info("Verification passed")
            return self._outcome(StepStatus.PASSED, c, step_index, selector=selector)

        # Soft assertion: never fails the step
        return self._miss(c, step_index, f"Could not verify: {target}")

    async def _click(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        target = c.target
        if not target:
            return self._miss(c, step_index, "Click step has no target")

        logger.info(f"Looking for clickable element: \"{target}\"")

        self.state = ExecutorState.RESOLVING
        result = await self.resolver.resolve(click_selectors(target))
        if not result.found:
            return self._miss(c, step_index, f"Could not find element to click: {target}")

        self.state = ExecutorState.ACTING
        await result.locator.click(timeout=self.action_timeout)

        logger.info("Clicked successfully")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=result.selector)

    async def _filter(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        logger.info("Looking for filter controls")

        self.state = ExecutorState.RESOLVING
        result = await self.resolver.resolve(['button:has-text("filter")'])
        if not result.found:
            return self._miss(c, step_index, "Could not find filter controls")

        self.state = ExecutorState.ACTING
        await result.locator.click(timeout=self.action_timeout)

        logger.info("Opened filter")
        return self._outcome(StepStatus.PASSED, c, step_index, selector=result.selector)

    async def _unknown(self, c: Classification, step_index: int, case_id: Optional[str]) -> StepOutcome:
        logger.info("Generic step - checking page state")
        path = await self.diagnostics.capture(self.page, "step", case_id, step_index + 1)
        return self._outcome(StepStatus.PASSED, c, step_index, screenshot_path=path)

