#!/usr/bin/env python3
"""
Stage 9 - Compile the tag expansion file used at query time

Usage:
    python scripts/stage_compile_mapping.py

Input:  data/tag-map-pipeline/tag-style-map.jsonl
Output: server/assets/tag-expanded-mappings.json (paths.final_mapping, rewritten)
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import TAG_STYLE_MAP_LEDGER
from tagmap.errors import PipelineError
from tagmap.mapping import run_mapping_stage

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    output_path = config.path('final_mapping')
    try:
        stats = run_mapping_stage(config.ledger(TAG_STYLE_MAP_LEDGER), output_path)
    except PipelineError as e:
        logger.error(str(e))
        return 1

    print_summary('MAPPING COMPILE SUMMARY', [
        ('Tag-style entries', stats['entries']),
        ('Tags with expansions', stats['mappings']),
        ('Dropped (no expansion)', stats['dropped_empty']),
        ('Output', str(output_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
