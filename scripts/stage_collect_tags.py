#!/usr/bin/env python3
"""
Stage 1 - Collect raw tags from the song metadata files

Reads every song JSON file in paths.songs_dir and writes one line per tag
occurrence. Blacklisted tags go to a separate audit ledger instead.

Usage:
    python scripts/stage_collect_tags.py
    python scripts/stage_collect_tags.py --config config.yaml --verbose

Outputs (rewritten):
    data/tag-map-pipeline/tag-source-raw.jsonl
    data/tag-map-pipeline/tag-source-blacklisted.jsonl
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.collector import collect_tags, load_blacklist
from tagmap.config import PipelineConfig
from tagmap.constants import RAW_TAGS_LEDGER, REMOVED_TAGS_LEDGER
from tagmap.errors import PipelineError

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    output_path = config.ledger(RAW_TAGS_LEDGER)
    removed_path = config.ledger(REMOVED_TAGS_LEDGER)

    try:
        blacklist = load_blacklist(config.path('blacklist'))
        stats = collect_tags(
            songs_dir=config.path('songs_dir'),
            blacklist=blacklist,
            output_path=output_path,
            removed_path=removed_path,
            tag_sources=config.tag_sources,
        )
    except PipelineError as e:
        logger.error(str(e))
        return 1

    print_summary('TAG COLLECTION SUMMARY', [
        ('Song files', stats['files']),
        ('Skipped (unreadable)', stats['skipped_files']),
        ('Blacklist size', len(blacklist)),
        ('Tags kept', stats['kept']),
        ('Tags removed (blacklisted)', stats['removed']),
        ('Raw ledger', str(output_path)),
        ('Removed ledger', str(removed_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
