#!/usr/bin/env python3
"""
tagmap/llm_stage.py - Shared driver for the resumable classification stages

Stages 3 (compound), 6 (canonical) and 7 (hierarchy) share one loop:

  for each unit, highest usage first:
      skip if the checkpoint already holds its key
      classify it (one service call)
      append the result immediately

Processing is strictly sequential; the checkpoint ledger has a single writer.
"""

import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar

from tagmap.checkpoint import LedgerCheckpoint
from tagmap.errors import ClassificationServiceError, InvalidResponseError
from tagmap.policy import ErrorPolicy

logger = logging.getLogger(__name__)

U = TypeVar('U')


def run_resumable(
    units: Iterable[U],
    key_of: Callable[[U], str],
    classify: Callable[[U], Dict[str, Any]],
    checkpoint: LedgerCheckpoint,
    policy: ErrorPolicy,
    limit: Optional[int] = None,
    label: str = 'unit',
) -> Counter:
    """
    Classify every unit whose key is not yet checkpointed

    Args:
        units: Work items in processing order
        key_of: Returns the checkpoint key of a unit
        classify: Performs the service call and returns the ledger record.
            Raises ClassificationServiceError or InvalidResponseError.
        checkpoint: Output ledger of the stage
        policy: Decides whether a failure aborts the stage or skips the unit
        limit: Only consider the first N units (None = all)

    Returns:
        Counter with considered / already_done / processed /
        service_errors / invalid_responses

    Raises:
        ClassificationServiceError / InvalidResponseError when the policy says abort
    """
    stats: Counter = Counter()
    units = list(units)
    if limit is not None:
        units = units[:limit]

    pending = sum(1 for u in units if not checkpoint.has_processed(key_of(u)))
    logger.info(f"{label}: {len(units)} considered, {len(units) - pending} already done, {pending} to process")

    position = 0
    for unit in units:
        stats['considered'] += 1
        key = key_of(unit)
        if checkpoint.has_processed(key):
            stats['already_done'] += 1
            continue

        position += 1
        logger.info(f"[{position}/{pending}] Classifying {label} '{key}'")
        try:
            record = classify(unit)
        except ClassificationServiceError as e:
            stats['service_errors'] += 1
            if policy.abort_on_service_error:
                logger.error(f"Service error on {label} '{key}' - aborting stage: {e}")
                raise
            logger.warning(f"Service error on {label} '{key}' - skipped, will retry next run: {e}")
            continue
        except InvalidResponseError as e:
            stats['invalid_responses'] += 1
            if policy.abort_on_invalid_response:
                logger.error(f"{e} - aborting stage")
                logger.error(f"Raw model output:\n{e.raw}")
                raise
            logger.warning(f"{e} - skipped, will retry next run")
            logger.debug(f"Raw model output:\n{e.raw}")
            continue

        if checkpoint.record_result(key, record):
            stats['processed'] += 1

    return stats
