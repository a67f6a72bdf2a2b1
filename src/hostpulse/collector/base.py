"""
Base collector interface.

A collector turns one or more probe results into one snapshot fragment.
It never raises for a missing or broken source: every failure means
"try the next source", and when the chain runs dry the collector hands
back its placeholder text instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from hostpulse.metrics import TITLES, placeholder_fragment
from hostpulse.probe import SourceProbe, SourceResult


class FragmentCollector(ABC):
    """Interface for all snapshot fragments."""

    key: str = ""

    def __init__(self, probe: SourceProbe):
        self._probe = probe

    @property
    def title(self) -> str:
        return TITLES.get(self.key, self.key)

    @abstractmethod
    def collect(self):
        """Produce this collector's fragment. Must not raise on source errors."""
        ...

    def placeholder(self, text: str):
        """A fragment of the right shape carrying `text` everywhere."""
        return placeholder_fragment(self.key, text)

    def name(self) -> str:
        return f"{type(self).__name__} ({self.key})"


def first_available(*sources: Callable[[], Optional[str]]) -> Optional[str]:
    """Walk a fallback chain; first source returning non-empty text wins.

    Each source is a zero-arg callable so later (possibly slow) sources
    only run when the earlier ones came up empty.
    """
    for source in sources:
        text = source()
        if text:
            return text
    return None


def labelled(prefix: str, result: SourceResult) -> Optional[str]:
    return f"{prefix}\n{result.text}" if result.ok else None
