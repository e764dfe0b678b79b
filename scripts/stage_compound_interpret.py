#!/usr/bin/env python3
"""
Stage 3 - Interpret compound tags with the local model (resumable)

Splits each normalized tag into style / descriptor / invalid segments.
Results are appended one tag at a time; re-running continues where the
previous run stopped. An undecodable model answer aborts the run by default
(policies.compound in config.yaml).

Usage:
    python scripts/stage_compound_interpret.py
    python scripts/stage_compound_interpret.py --limit 200
    python scripts/stage_compound_interpret.py --skip-model-check

Input:  data/tag-map-pipeline/tag-normalized.jsonl
Output: data/tag-map-pipeline/tag-compound-stage.jsonl (append)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import connect_client, print_summary, setup_logging, stage_parser
from tagmap.compound import run_compound_stage
from tagmap.config import PipelineConfig
from tagmap.constants import COMPOUND_LEDGER, COMPOUND_PROMPT, NORMALIZED_TAGS_LEDGER
from tagmap.errors import PipelineError
from tagmap.prompts import load_base_prompt

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__, llm=True).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    client = connect_client(config, args.skip_model_check)
    if client is None:
        return 1

    output_path = config.ledger(COMPOUND_LEDGER)
    try:
        base_prompt = load_base_prompt(config.prompt(COMPOUND_PROMPT))
        stats = run_compound_stage(
            client,
            base_prompt,
            config.ledger(NORMALIZED_TAGS_LEDGER),
            output_path,
            policy=config.policy('compound'),
            limit=args.limit,
        )
    except PipelineError as e:
        logger.error(f"Compound interpretation stopped: {e}")
        logger.error(f"Entries written so far are kept in {output_path}; re-run to resume")
        return 1

    client_stats = client.get_stats()
    print_summary('COMPOUND INTERPRETATION SUMMARY', [
        ('Normalized tags', stats['total']),
        ('Considered', stats['considered']),
        ('Already done', stats['already_done']),
        ('Processed this run', stats['processed']),
        ('Invalid responses (skipped)', stats['invalid_responses']),
        ('Service errors (skipped)', stats['service_errors']),
        ('Model calls', client_stats['calls']),
        ('Output', str(output_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
