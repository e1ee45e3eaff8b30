"""
Diagnostic screenshots.

Filenames carry the test case id, step number and a millisecond timestamp
so repeated runs never overwrite each other.
"""

import re
import time
import logging
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Error as PlaywrightError

# Configure logging
logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def _safe(part: str) -> str:
    return _UNSAFE_CHARS.sub('_', str(part)).strip('_') or 'x'


class Diagnostics:
    """Builds screenshot paths and captures them, never raising."""

    def __init__(self, output_dir: Union[str, Path] = "test-results"):
        self.output_dir = Path(output_dir)

    def screenshot_path(self, prefix: str, case_id: Optional[str] = None, step_number: Optional[int] = None) -> Path:
        parts = [_safe(prefix)]
        if case_id is not None:
            parts.append(_safe(case_id))
        if step_number is not None:
            parts.append(f"step{step_number}")
        parts.append(str(int(time.time() * 1000)))
        return self.output_dir / ("_".join(parts) + ".png")

    async def capture(
        self,
        page,
        prefix: str,
        case_id: Optional[str] = None,
        step_number: Optional[int] = None,
        full_page: bool = False
    ) -> Optional[str]:
        """Take a screenshot; returns its path, or None if the page refused."""
        path = self.screenshot_path(prefix, case_id, step_number)
        try:
            if page.is_closed():
                logger.warning(f"Page already closed, cannot take {prefix} screenshot")
                return None
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=full_page)
            logger.info(f"Screenshot saved: {path}")
            return str(path)
        except PlaywrightError as e:
            logger.warning(f"Could not take screenshot {path}: {e.message}")
            return None
        except OSError as e:
            logger.warning(f"Could not write screenshot {path}: {e}")
            return None
