"""
Selector Resolver

Walks an ordered list of candidate selectors and returns the first one
whose element becomes visible within a short wait.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from playwright.async_api import Error as PlaywrightError

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    """Outcome of resolving a candidate chain"""
    found: bool
    selector: Optional[str] = None
    locator: Any = None
    tried: List[str] = field(default_factory=list)

    @classmethod
    def miss(cls, tried: List[str]) -> "ResolveResult":
        return cls(found=False, tried=tried)


def dedupe(candidates: Iterable[str]) -> List[str]:
    """Drop empty and repeated selectors, keeping first occurrence order."""
    seen = set()
    ordered = []
    for sel in candidates:
        if sel and sel not in seen:
            seen.add(sel)
            ordered.append(sel)
    return ordered


class SelectorResolver:
    """
    Resolves candidate selectors against the current page.

    Each candidate gets its own bounded visibility wait, so the worst case
    for a chain is len(candidates) * timeout.
    """

    DEFAULT_TIMEOUT = 2000

    def __init__(self, page=None, timeout: int = DEFAULT_TIMEOUT):
        self.page = page
        self.timeout = timeout

    def set_page(self, page):
        """Set the Playwright page object"""
        self.page = page

    async def is_visible(self, selector: str, timeout: Optional[int] = None) -> bool:
        """True if the first element matching selector becomes visible in time."""
        locator = self.page.locator(selector).first
        try:
            await locator.wait_for(state="visible", timeout=timeout or self.timeout)
            return True
        except PlaywrightError as e:
            # Timeouts and malformed selectors both just mean "not this one"
            logger.debug(f"Selector not visible: {selector} - {e.message}")
            return False

    async def resolve(self, candidates: Iterable[str], timeout: Optional[int] = None) -> ResolveResult:
        """Return the first visible candidate, or a miss when all are exhausted."""
        tried = []
        for sel in dedupe(candidates):
            tried.append(sel)
            if await self.is_visible(sel, timeout):
                logger.debug(f"Resolved selector: {sel}")
                return ResolveResult(
                    found=True,
                    selector=sel,
                    locator=self.page.locator(sel).first,
                    tried=tried
                )

        return ResolveResult.miss(tried)

    async def first_success(self, *chains: Iterable[str], timeout: Optional[int] = None) -> ResolveResult:
        """Resolve several chains in order, stopping at the first hit."""
        tried = []
        for chain in chains:
            result = await self.resolve([sel for sel in chain if sel not in tried], timeout)
            tried.extend(result.tried)
            if result.found:
                result.tried = tried
                return result
        return ResolveResult.miss(tried)
