#!/usr/bin/env python3
"""
Shared constants for the tag taxonomy pipeline

Single source of truth for ledger file names, tag sources, bucket names and
example caps. DO NOT duplicate these in stage modules - import from here instead.
"""

# (container key, field key, source label) pairs scanned in every song file.
# The entity-local "tags" list is always scanned in addition, as source "local".
TAG_SOURCES = [
    ('lastfm', 'tags', 'lastfm:tags'),
    ('musicbrainz', 'artistTags', 'musicbrainz:artistTags'),
    ('musicbrainz', 'artistGenres', 'musicbrainz:artistGenres'),
    ('musicbrainz', 'genres', 'musicbrainz:genres'),
]

LOCAL_TAG_SOURCE = 'local'

SONG_FILE_SUFFIXES = ('.json', '.json5')

# Ledger file names (relative to paths.data_dir)
RAW_TAGS_LEDGER = 'tag-source-raw.jsonl'
REMOVED_TAGS_LEDGER = 'tag-source-blacklisted.jsonl'
NORMALIZED_TAGS_LEDGER = 'tag-normalized.jsonl'
COMPOUND_LEDGER = 'tag-compound-stage.jsonl'
COMPOUND_OVERRIDE_LEDGER = 'tag-compound-stage-override.jsonl'
POSTPROCESSED_LEDGER = 'tag-compound-postprocessed.jsonl'
BLACKLIST_CANDIDATES_LEDGER = 'tag-auto-blacklist-candidates.jsonl'
RAW_STYLES_LEDGER = 'style-raw-summary.jsonl'
CANONICAL_MAP_LEDGER = 'style-canonical-map.jsonl'
HIERARCHY_LEDGER = 'style-hierarchy.jsonl'
TAXONOMY_LEDGER = 'style-taxonomy.jsonl'
GENRE_SUMMARY_FILE = 'genre-summary.json'
TAG_STYLE_MAP_LEDGER = 'tag-style-map.jsonl'
BLACKLIST_RESULTS_LEDGER = 'tag-blacklist-model-results.jsonl'

# Prompt file names (relative to paths.prompts_dir)
COMPOUND_PROMPT = 'tag-compound-interpretation-v3.txt'
CANONICAL_PROMPT = 'style-canonicalization-v1.txt'
HIERARCHY_PROMPT = 'style-hierarchy-v1.txt'
BLACKLIST_PROMPT = 'tag-blacklist-prompt-v2.txt'

# Segment kinds returned by the compound interpreter
SEGMENT_STYLE = 'style'
SEGMENT_DESCRIPTOR = 'descriptor'
SEGMENT_INVALID = 'invalid'
SEGMENT_KINDS = (SEGMENT_STYLE, SEGMENT_DESCRIPTOR, SEGMENT_INVALID)

# Postprocessor buckets
BUCKET_STYLE_ONLY = 'STYLE_ONLY'
BUCKET_STYLE_WITH_DESCRIPTORS = 'STYLE_WITH_DESCRIPTORS'
BUCKET_DESCRIPTORS_ONLY = 'DESCRIPTORS_ONLY'
BUCKET_PURE_INVALID = 'PURE_INVALID'
BUCKETS = (
    BUCKET_STYLE_ONLY,
    BUCKET_STYLE_WITH_DESCRIPTORS,
    BUCKET_DESCRIPTORS_ONLY,
    BUCKET_PURE_INVALID,
)

OVERRIDE_REASON = 'Manually corrected via tag-compound-stage-override.jsonl'
PURE_INVALID_REASON = 'PURE_INVALID (no styles or descriptors; only invalid parts)'

# Canonicalization actions
ACTION_KEEP = 'keep'
ACTION_ALIAS = 'alias'
ACTION_REJECT = 'reject'
CANONICAL_ACTIONS = (ACTION_KEEP, ACTION_ALIAS, ACTION_REJECT)

# Taxonomy kinds
KIND_GENRE = 'genre'
KIND_SUBGENRE = 'subgenre'

# Example caps
MAX_RAW_EXAMPLES = 5
MAX_STYLE_EXAMPLES = 5
MAX_CANONICAL_EXAMPLES = 10

# Blacklist augmenter
BLACKLIST_BATCH_SIZE = 20
BLACKLIST_DECISION = 'blacklist'
