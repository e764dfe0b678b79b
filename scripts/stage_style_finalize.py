#!/usr/bin/env python3
"""
Stage 8 - Build the style taxonomy, genre summary and tag-to-style map

Usage:
    python scripts/stage_style_finalize.py

Inputs:
    data/tag-map-pipeline/style-hierarchy.jsonl
    data/tag-map-pipeline/style-canonical-map.jsonl
    data/tag-map-pipeline/tag-compound-postprocessed.jsonl
Outputs (rewritten):
    data/tag-map-pipeline/style-taxonomy.jsonl
    data/tag-map-pipeline/genre-summary.json
    data/tag-map-pipeline/tag-style-map.jsonl
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import (
    CANONICAL_MAP_LEDGER,
    GENRE_SUMMARY_FILE,
    HIERARCHY_LEDGER,
    POSTPROCESSED_LEDGER,
    TAG_STYLE_MAP_LEDGER,
    TAXONOMY_LEDGER,
)
from tagmap.errors import PipelineError
from tagmap.finalize import run_finalize_stage

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    try:
        stats = run_finalize_stage(
            hierarchy_path=config.ledger(HIERARCHY_LEDGER),
            canonical_map_path=config.ledger(CANONICAL_MAP_LEDGER),
            postprocessed_path=config.ledger(POSTPROCESSED_LEDGER),
            taxonomy_path=config.ledger(TAXONOMY_LEDGER),
            summary_path=config.ledger(GENRE_SUMMARY_FILE),
            tag_map_path=config.ledger(TAG_STYLE_MAP_LEDGER),
        )
    except PipelineError as e:
        logger.error(str(e))
        return 1

    print_summary('TAXONOMY FINALIZE SUMMARY', [
        ('Genres', stats['genres']),
        ('Subgenres', stats['subgenres']),
        ('Genres in summary', stats['summary_genres']),
        ('Postprocessed tags', stats['tags']),
        ('Tags mapped to styles', stats['mapped_tags']),
        ('Tags without style', stats['unmapped_tags']),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
