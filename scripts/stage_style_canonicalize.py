#!/usr/bin/env python3
"""
Stage 6 - Canonicalize raw styles with the local model (resumable)

Each raw style is kept, aliased to another canonical style, or rejected.
Styles whose answer could not be decoded are skipped and retried on the next
run (policies.canonical in config.yaml).

Usage:
    python scripts/stage_style_canonicalize.py
    python scripts/stage_style_canonicalize.py --limit 100

Input:  data/tag-map-pipeline/style-raw-summary.jsonl
Output: data/tag-map-pipeline/style-canonical-map.jsonl (append)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.canonical import run_canonical_stage
from tagmap.cli import connect_client, print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import CANONICAL_ACTIONS, CANONICAL_MAP_LEDGER, CANONICAL_PROMPT, RAW_STYLES_LEDGER
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

    output_path = config.ledger(CANONICAL_MAP_LEDGER)
    try:
        base_prompt = load_base_prompt(config.prompt(CANONICAL_PROMPT))
        stats = run_canonical_stage(
            client,
            base_prompt,
            config.ledger(RAW_STYLES_LEDGER),
            output_path,
            policy=config.policy('canonical'),
            limit=args.limit,
        )
    except PipelineError as e:
        logger.error(f"Style canonicalization stopped: {e}")
        return 1

    rows = [
        ('Raw styles', stats['total']),
        ('Already done', stats['already_done']),
        ('Processed this run', stats['processed']),
        ('Invalid responses (skipped)', stats['invalid_responses']),
        ('Service errors (skipped)', stats['service_errors']),
    ]
    rows.extend((f'Map entries ({action})', stats[f'action_{action}']) for action in CANONICAL_ACTIONS)
    rows.append(('Output', str(output_path)))
    print_summary('STYLE CANONICALIZATION SUMMARY', rows)
    return 0


if __name__ == '__main__':
    sys.exit(main())
