# -*- coding: utf-8 -*-
"""
Duplicate Resolver

Finds an existing emission factor that conflicts with an incoming one.
Matching is scoped: candidates must share category and activity unit
exactly, whatever the name similarity, so the same fuel measured in
litres and in kilograms never collapses into one record.

Tiers, first hit wins:
    1. exact  - names equal ignoring case and surrounding/repeated spaces
    2. fuzzy  - name similarity strictly above the threshold (best score,
                earliest record on ties)

The resolver only reports the conflict; deciding what to do with it is
left to the caller's duplicate policy.
"""

import logging
from typing import Iterable, Optional

from ghgengine import metrics
from ghgengine.config import get_config
from ghgengine.factor_import.models import (
    DuplicateMatch,
    EmissionFactorData,
    EmissionFactorRecord,
    MatchType,
)
from ghgengine.factor_import.similarity import similarity

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """Lower-case and collapse whitespace for name comparison."""
    return " ".join(name.lower().split())


class DuplicateResolver:
    """Exact-then-fuzzy duplicate lookup over a factor corpus."""

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = threshold if threshold is not None else get_config().fuzzy_match_threshold

    def find_duplicate(
        self,
        existing_corpus: Iterable[EmissionFactorRecord],
        candidate: EmissionFactorData,
    ) -> Optional[DuplicateMatch]:
        """Return the conflicting record for ``candidate``, or None.

        Args:
            existing_corpus: Records already persisted (including those
                created earlier in the same import run).
            candidate: Incoming factor payload.
        """
        wanted = normalize_name(candidate.name)
        scoped = [
            record for record in existing_corpus
            if record.category == candidate.category
            and record.activity_unit == candidate.activity_unit
        ]

        for record in scoped:
            if normalize_name(record.name) == wanted:
                logger.debug("Exact duplicate for %r: %s", candidate.name, record.id)
                metrics.inc_duplicates(MatchType.EXACT.value)
                return DuplicateMatch(existing=record, match_type=MatchType.EXACT, similarity=1.0)

        best: Optional[EmissionFactorRecord] = None
        best_score = 0.0
        for record in scoped:
            score = similarity(normalize_name(record.name), wanted)
            if score > self.threshold and score > best_score:
                best, best_score = record, score

        if best is None:
            return None

        logger.debug(
            "Fuzzy duplicate for %r: %r (similarity=%.3f)",
            candidate.name, best.name, best_score,
        )
        metrics.inc_duplicates(MatchType.FUZZY.value)
        return DuplicateMatch(existing=best, match_type=MatchType.FUZZY, similarity=best_score)


__all__ = ["DuplicateResolver", "normalize_name"]
