#!/usr/bin/env python3
"""
augment_blacklist.py - Grow the tag blacklist with the local model

Sends every not-yet-classified tag from the song files to the model in
batches (chat API, system prompt from prompts/tag-blacklist-prompt-v2.txt)
and merges tags judged "blacklist" into server/assets/tag-blacklist.json.
All answers are kept in data/tag-map-pipeline/tag-blacklist-model-results.jsonl
so a re-run only sends new tags.

Run this before stage 1 of run_pipeline.py so blacklisted tags never reach
the taxonomy stages.

Usage:
    python augment_blacklist.py
    python augment_blacklist.py --limit 100 --verbose
"""

import sys
import logging

from tagmap.blacklist import BlacklistClassifier, run_blacklist_augmenter
from tagmap.cli import connect_client, print_summary, setup_logging, stage_parser
from tagmap.config import PipelineConfig
from tagmap.constants import BLACKLIST_PROMPT, BLACKLIST_RESULTS_LEDGER
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

    prompt_path = config.prompt(BLACKLIST_PROMPT)
    results_path = config.ledger(BLACKLIST_RESULTS_LEDGER)
    blacklist_path = config.path('blacklist')

    try:
        classifier = BlacklistClassifier(client, load_base_prompt(prompt_path))
        stats = run_blacklist_augmenter(
            classifier,
            songs_dir=config.path('songs_dir'),
            blacklist_path=blacklist_path,
            results_path=results_path,
            prompt_name=prompt_path.name,
            batch_size=config.limit('blacklist_batch_size'),
            tag_sources=config.tag_sources,
            limit=args.limit,
        )
    except PipelineError as e:
        logger.error(f"Blacklist augmentation stopped: {e}")
        logger.error(f"Completed batches are kept in {results_path}; re-run to resume")
        return 1

    print_summary('BLACKLIST AUGMENTATION SUMMARY', [
        ('Unique tags', stats['unique_tags']),
        ('Already processed', stats['already_processed']),
        ('Batches sent', stats['batches']),
        ('Tags classified', stats['classified']),
        ('Decided blacklist', stats['decision_blacklist']),
        ('Decided whitelist', stats['decision_whitelist']),
        ('Added to blacklist', stats['added_to_blacklist']),
        ('Blacklist file', str(blacklist_path)),
    ])
    return 0


if __name__ == '__main__':
    sys.exit(main())
