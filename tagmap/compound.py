#!/usr/bin/env python3
"""
tagmap/compound.py - Stage 3: compound tag interpretation (LLM)

Asks the classification service to split each normalized tag into typed
segments:

  "lo-fi hip-hop"  ->  [{text: "hip hop", kind: style}, {text: "lo-fi", kind: descriptor}]

Tags run in descending total_count order so the high-impact tags are done
first. Each answer is appended to tag-compound-stage.jsonl as soon as it
decodes; a re-run skips every key already in that ledger.

An undecodable answer aborts the stage by default (ErrorPolicy 'abort'):
a bad decomposition is not silently dropped.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

from tagmap.checkpoint import LedgerCheckpoint
from tagmap.errors import InvalidResponseError
from tagmap.ledger import require_ledger
from tagmap.llm_stage import run_resumable
from tagmap.models import CompoundTagEntry, NormalizedTagEntry
from tagmap.policy import ABORT_ALL, ErrorPolicy
from tagmap.prompts import build_prompt
from tagmap.responses import decode_compound_response

logger = logging.getLogger(__name__)


def load_normalized_entries(path: Path) -> List[NormalizedTagEntry]:
    """Load the aggregator ledger sorted by descending total_count (stable)"""
    entries = [NormalizedTagEntry.from_dict(r) for r in require_ledger(path, required_key='normalized')]
    entries.sort(key=lambda e: e.total_count, reverse=True)
    return entries


class CompoundInterpreter:
    """Turns one normalized tag into a CompoundTagEntry via the service"""

    def __init__(self, client, base_prompt: str):
        self.client = client
        self.base_prompt = base_prompt

    def interpret(self, entry: NormalizedTagEntry) -> Dict:
        prompt = build_prompt(self.base_prompt, {'tag': entry.normalized})
        raw = self.client.generate(prompt)

        decoded = decode_compound_response(raw)
        if not decoded.ok:
            raise InvalidResponseError(entry.normalized, decoded.error, raw)

        return CompoundTagEntry(
            normalized=entry.normalized,
            total_count=entry.total_count,
            segments=decoded.value,
        ).to_dict()


def run_compound_stage(
    client,
    base_prompt: str,
    input_path: Path,
    output_path: Path,
    policy: ErrorPolicy = ABORT_ALL,
    limit: Optional[int] = None,
) -> Counter:
    logger.info(f"Reading normalized tags from: {input_path}")
    entries = load_normalized_entries(input_path)
    checkpoint = LedgerCheckpoint(output_path, key_field='normalized')

    done = sum(1 for e in entries if checkpoint.has_processed(e.normalized))
    total = len(entries)
    logger.info(f"Total unique normalized tags: {total}")
    logger.info(f"Already processed: {done}")
    if total:
        logger.info(f"Progress: {done / total * 100:.1f}%")

    interpreter = CompoundInterpreter(client, base_prompt)
    stats = run_resumable(
        entries,
        key_of=lambda e: e.normalized,
        classify=interpreter.interpret,
        checkpoint=checkpoint,
        policy=policy,
        limit=limit,
        label='tag',
    )
    stats['total'] = total
    return stats
