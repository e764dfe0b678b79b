#!/usr/bin/env python3
"""
Stage 7 - Classify canonical styles as genre or subgenre (resumable)

Usage:
    python scripts/stage_style_hierarchy.py
    python scripts/stage_style_hierarchy.py --limit 50 --verbose

Inputs:
    data/tag-map-pipeline/style-raw-summary.jsonl
    data/tag-map-pipeline/style-canonical-map.jsonl
Output:
    data/tag-map-pipeline/style-hierarchy.jsonl (append)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import connect_client, print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import CANONICAL_MAP_LEDGER, HIERARCHY_LEDGER, HIERARCHY_PROMPT, RAW_STYLES_LEDGER
from tagmap.errors import PipelineError
from tagmap.hierarchy import run_hierarchy_stage
from tagmap.prompts import load_base_prompt

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__, llm=True).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    client = connect_client(config, args.skip_model_check)
    if client is None:
        return 1

    output_path = config.ledger(HIERARCHY_LEDGER)
    try:
        base_prompt = load_base_prompt(config.prompt(HIERARCHY_PROMPT))
        stats = run_hierarchy_stage(
            client,
            base_prompt,
            config.ledger(RAW_STYLES_LEDGER),
            config.ledger(CANONICAL_MAP_LEDGER),
            output_path,
            policy=config.policy('hierarchy'),
            limit=args.limit,
            max_examples=config.limit('canonical_examples'),
        )
    except PipelineError as e:
        logger.error(f"Style hierarchy stopped: {e}")
        return 1

    print_summary('STYLE HIERARCHY SUMMARY', [
        ('Canonical styles', stats['total']),
        ('Raw styles without decision', stats['unmapped_raw_styles']),
        ('Already done', stats['already_done']),
        ('Processed this run', stats['processed']),
        ('Invalid responses (skipped)', stats['invalid_responses']),
        ('Service errors (skipped)', stats['service_errors']),
        ('Output', str(output_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
