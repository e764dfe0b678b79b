#!/usr/bin/env python3
"""
Stage 5 - Harvest the distinct style strings from the postprocessed tags

Usage:
    python scripts/stage_style_harvest.py

Input:  data/tag-map-pipeline/tag-compound-postprocessed.jsonl
Output: data/tag-map-pipeline/style-raw-summary.jsonl (rewritten)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import POSTPROCESSED_LEDGER, RAW_STYLES_LEDGER
from tagmap.errors import PipelineError
from tagmap.harvest import run_harvest_stage

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    output_path = config.ledger(RAW_STYLES_LEDGER)
    try:
        stats = run_harvest_stage(
            config.ledger(POSTPROCESSED_LEDGER),
            output_path,
            max_examples=config.limit('style_examples'),
        )
    except PipelineError as e:
        logger.error(str(e))
        return 1

    print_summary('STYLE HARVEST SUMMARY', [
        ('Postprocessed tags', stats['tags']),
        ('Tags with styles', stats['tags_with_styles']),
        ('Unique styles', stats['unique_styles']),
        ('Output', str(output_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
