#!/usr/bin/env python3
"""
Stage 4 - Merge manual overrides and bucket every compound tag

Manual corrections in tag-compound-stage-override.jsonl (same line format as
the interpreter output) always win over the model's interpretation.

Usage:
    python scripts/stage_compound_postprocess.py

Inputs:
    data/tag-map-pipeline/tag-compound-stage.jsonl
    data/tag-map-pipeline/tag-compound-stage-override.jsonl (optional)
Outputs (rewritten):
    data/tag-map-pipeline/tag-compound-postprocessed.jsonl
    data/tag-map-pipeline/tag-auto-blacklist-candidates.jsonl
"""

import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.cli import print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import (
    BLACKLIST_CANDIDATES_LEDGER,
    BUCKETS,
    COMPOUND_LEDGER,
    POSTPROCESSED_LEDGER,
)
from tagmap.errors import LedgerError
from tagmap.postprocess import run_postprocess_stage

logger = logging.getLogger(__name__)


def main() -> int:
    args = stage_parser(__doc__).parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)

    base_path = config.ledger(COMPOUND_LEDGER)
    if not base_path.exists():
        logger.error(f"Input file does not exist: {base_path}")
        return 1

    override_path = config.path('override')
    if not override_path.exists():
        logger.info(f"No override file at {override_path} - using model output only")
        override_path = None

    output_path = config.ledger(POSTPROCESSED_LEDGER)
    candidates_path = config.ledger(BLACKLIST_CANDIDATES_LEDGER)
    try:
        stats = run_postprocess_stage(base_path, override_path, output_path, candidates_path)
    except LedgerError as e:
        logger.error(str(e))
        return 1

    rows = [
        ('Base entries', stats['base_entries']),
        ('Overrides applied', stats['overrides_applied']),
        ('Overrides added', stats['overrides_added']),
        ('Merged entries', stats['merged_entries']),
    ]
    rows.extend((bucket, stats[bucket]) for bucket in BUCKETS)
    rows.append(('Output', str(output_path)))
    rows.append(('Blacklist candidates', str(candidates_path)))
    print_summary('COMPOUND POSTPROCESS SUMMARY', rows)
    return 0


if __name__ == '__main__':
    sys.exit(main())
