"""
UI Alias Map

Maps application concepts ("whatsapp.sendButton") to a primary selector
plus ordered alternates. Loaded once per run and passed explicitly to the
components that need it.

File format::

    {
        "whatsapp": {
            "sendButton": {"selector": "...", "alternates": ["...", "..."]}
        },
        "common": { ... }
    }
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

# Configure logging
logger = logging.getLogger(__name__)


class AliasEntry(BaseModel):
    """One named control: primary selector and fallbacks, in order."""
    selector: str
    alternates: List[str] = []

    def candidates(self) -> List[str]:
        return [self.selector] + list(self.alternates)


class UIAliasMap:
    """Read-only lookup over the alias map document."""

    def __init__(self, domains: Optional[Dict[str, Dict[str, AliasEntry]]] = None):
        self._domains: Dict[str, Dict[str, AliasEntry]] = domains or {}

    @classmethod
    def from_dict(cls, data: Dict) -> "UIAliasMap":
        """Build from a parsed document, skipping entries that don't validate."""
        if not isinstance(data, dict):
            logger.warning(f"Alias map root must be an object, got {type(data).__name__}; using default selectors")
            return cls()

        domains: Dict[str, Dict[str, AliasEntry]] = {}

        for domain, controls in data.items():
            if not isinstance(controls, dict):
                logger.warning(f"Alias map domain '{domain}' is not an object, skipping")
                continue

            entries = {}
            for name, raw in controls.items():
                try:
                    entries[name] = AliasEntry.model_validate(raw)
                except ValidationError as e:
                    logger.warning(f"Invalid alias entry {domain}.{name}: {e.errors()[0]['msg']}")
            domains[domain] = entries

        return cls(domains)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "UIAliasMap":
        """
        Load the alias map from disk.

        A missing or unreadable file yields an empty map, so only the
        generic selectors are used.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"UI alias map not found at {path}, using default selectors")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read UI alias map {path}: {e}")
            return cls()

        alias_map = cls.from_dict(data)
        logger.info(f"UI alias map loaded: {len(alias_map)} controls in {len(alias_map.domains)} domains")
        return alias_map

    @property
    def domains(self) -> List[str]:
        return list(self._domains.keys())

    def has_domain(self, domain: str) -> bool:
        return domain in self._domains

    def get(self, domain: str, control: str) -> Optional[AliasEntry]:
        return self._domains.get(domain, {}).get(control)

    def candidates(self, dotted_name: str) -> List[str]:
        """Selectors for 'domain.control', or [] when unmapped."""
        domain, _, control = dotted_name.partition(".")
        entry = self.get(domain, control)
        return entry.candidates() if entry else []

    def __len__(self) -> int:
        return sum(len(controls) for controls in self._domains.values())

    def __bool__(self) -> bool:
        return bool(self._domains)


@dataclass(frozen=True)
class AliasRule:
    """
    Pulls a mapped control into a candidate chain when the step mentions it.

    The rule fires when the step has at least one of group_words (if any are
    given) and at least one of control_words (if any are given).
    """
    control: str
    group_words: FrozenSet[str] = frozenset()
    control_words: FrozenSet[str] = frozenset()

    def matches(self, keywords: Iterable[str]) -> bool:
        words = set(keywords)
        if self.group_words and not (self.group_words & words):
            return False
        if self.control_words and not (self.control_words & words):
            return False
        return True


def alias_candidates(alias_map: Optional[UIAliasMap], rules: Iterable[AliasRule], keywords: Iterable[str]) -> List[str]:
    """Selectors of every matching rule, in rule order."""
    if alias_map is None:
        return []

    keywords = list(keywords)
    selectors: List[str] = []
    for rule in rules:
        if rule.matches(keywords):
            selectors.extend(alias_map.candidates(rule.control))
    return selectors
