"""
Deduplicator

The record store can hold the same platform estimate more than once (repeat
imports, re-exports). The first record per external_id wins; records with no
external_id cannot be matched and are always kept.
"""

import logging
from typing import List, Sequence, Set

from estimate_engine.models.schemas import EstimateRecord


logger = logging.getLogger(__name__)


def dedupe(estimates: Sequence[EstimateRecord]) -> List[EstimateRecord]:
    """
    Remove repeated estimates, keeping the first occurrence.

    Args:
        estimates: Estimate records in encounter order

    Returns:
        A new list in the original order with later duplicates dropped.
    """
    seen: Set[str] = set()
    unique: List[EstimateRecord] = []

    for estimate in estimates:
        key = estimate.external_id
        if key:
            if key in seen:
                continue
            seen.add(key)
        unique.append(estimate)

    removed = len(estimates) - len(unique)
    if removed:
        logger.info(f"Dropped {removed} duplicate estimates by external_id")

    return unique
