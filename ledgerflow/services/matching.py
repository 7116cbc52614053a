"""
Entry Matcher - decides which ledger entries pay a given obligation.

Strategies are ranked; the first tier that finds anything wins:

1. linked            - entries whose obligation_id is the obligation's id
2. recurring_source  - unlinked entries with source="recurring" and the same
                       name (left behind when an obligation was deleted and
                       re-created)
3. fuzzy_name        - unlinked entries whose name contains the obligation's
                       name or vice versa, case-insensitive

Tiers 2 and 3 are heuristics. Fuzzy matching can produce false positives
(e.g. "Gas" matches "Gas Station"), so it can be switched off with
FUZZY_NAME_MATCHING_ENABLED and every use is logged.

Tie-breaking for heuristic tiers (first-match-by-date): candidates are
ordered by (entry_date, id) and only the earliest ``limit`` are taken, where
``limit`` is the number of due dates the obligation has left in the window
(minimum 1). Callers annotating several obligations pass the ids already
claimed so one manual entry never pays two obligations.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set
import logging

from ledgerflow.config import settings
from ledgerflow.types import EntrySource

logger = logging.getLogger(__name__)


def _normalize(name: Optional[str]) -> str:
    return (name or "").strip().lower()


class MatchStrategy(ABC):
    """One tier of the matcher."""

    name: str = "base"
    heuristic: bool = False

    @abstractmethod
    def match(self, obligation, entries: Sequence) -> List:
        """Entries from ``entries`` this tier attributes to ``obligation``."""
        pass


class LinkedEntryStrategy(MatchStrategy):
    """Entries explicitly linked to the obligation."""

    name = "linked"

    def match(self, obligation, entries):
        return [e for e in entries if e.obligation_id == obligation.id]


class RecurringSourceStrategy(MatchStrategy):
    """Orphaned recurring entries carrying exactly the obligation's name."""

    name = "recurring_source"
    heuristic = True

    def match(self, obligation, entries):
        target = _normalize(obligation.name)
        return [
            e for e in entries
            if e.obligation_id is None
            and e.source == EntrySource.RECURRING
            and _normalize(e.name) == target
        ]


class FuzzyNameStrategy(MatchStrategy):
    """Unlinked entries whose name overlaps the obligation's name."""

    name = "fuzzy_name"
    heuristic = True

    def match(self, obligation, entries):
        target = _normalize(obligation.name)
        if not target:
            return []
        matched = []
        for entry in entries:
            if entry.obligation_id is not None:
                continue
            candidate = _normalize(entry.name)
            # An empty name is a substring of everything
            if candidate and (candidate in target or target in candidate):
                matched.append(entry)
        return matched


@dataclass
class MatchResult:
    """Entries a matcher attributed to one obligation."""
    strategy: Optional[str] = None
    entries: List = field(default_factory=list)
    heuristic: bool = False

    @property
    def entry_ids(self) -> List[str]:
        return [e.id for e in self.entries]


class EntryMatcher:
    """Runs the ranked strategies against a month's entries."""

    def __init__(
        self,
        strategies: Optional[List[MatchStrategy]] = None,
        fuzzy_enabled: Optional[bool] = None,
    ):
        if strategies is None:
            if fuzzy_enabled is None:
                fuzzy_enabled = settings.FUZZY_NAME_MATCHING_ENABLED
            strategies = [LinkedEntryStrategy(), RecurringSourceStrategy()]
            if fuzzy_enabled:
                strategies.append(FuzzyNameStrategy())
        self.strategies = strategies

    def match(
        self,
        obligation,
        entries: Iterable,
        limit: Optional[int] = None,
        exclude_ids: Optional[Set[str]] = None,
    ) -> MatchResult:
        """Return the entries paying ``obligation`` from the first tier that finds any."""
        exclude_ids = exclude_ids or set()
        candidates = [e for e in entries if e.id not in exclude_ids]

        for strategy in self.strategies:
            found = strategy.match(obligation, candidates)
            if not found:
                continue

            found = sorted(found, key=lambda e: (e.entry_date, e.id))
            if strategy.heuristic:
                if limit is not None:
                    found = found[:max(1, limit)]
                logger.info(
                    f"Heuristic match ({strategy.name}) for obligation {obligation.id} "
                    f"'{obligation.name}': entries {[e.id for e in found]}"
                )
            return MatchResult(strategy=strategy.name, entries=found, heuristic=strategy.heuristic)

        return MatchResult()
