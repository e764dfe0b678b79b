#!/usr/bin/env python3
"""
Stage 2 - Aggregate raw tag occurrences by normalized tag

Usage:
    python scripts/stage_aggregate_tags.py

Input:  data/tag-map-pipeline/tag-source-raw.jsonl
Output: data/tag-map-pipeline/tag-normalized.jsonl (rewritten)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.aggregator import run_aggregate_stage
from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import NORMALIZED_TAGS_LEDGER, RAW_TAGS_LEDGER
from tagmap.errors import PipelineError

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    output_path = config.ledger(NORMALIZED_TAGS_LEDGER)
    try:
        stats = run_aggregate_stage(
            config.ledger(RAW_TAGS_LEDGER),
            output_path,
            max_examples=config.limit('raw_examples'),
        )
    except PipelineError as e:
        logger.error(str(e))
        return 1

    print_summary('TAG AGGREGATION SUMMARY', [
        ('Raw tag occurrences', stats['raw_records']),
        ('Unique normalized tags', stats['unique_tags']),
        ('Output', str(output_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
