#!/usr/bin/env python3
"""
Tag Taxonomy Dashboard
Single-file Streamlit application for reviewing the tag map pipeline ledgers.

Run:  streamlit run dashboard.py
"""

import sys
import json
import pandas as pd
import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
from pathlib import Path
from datetime import datetime

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="Tag Taxonomy",
    page_icon="\U0001F3B5",
    layout="wide",
    initial_sidebar_state="expanded",
)

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tagmap.config import PipelineConfig
from tagmap.constants import (
    BLACKLIST_CANDIDATES_LEDGER,
    BUCKETS,
    CANONICAL_MAP_LEDGER,
    COMPOUND_LEDGER,
    GENRE_SUMMARY_FILE,
    HIERARCHY_LEDGER,
    NORMALIZED_TAGS_LEDGER,
    POSTPROCESSED_LEDGER,
    RAW_STYLES_LEDGER,
    RAW_TAGS_LEDGER,
    REMOVED_TAGS_LEDGER,
    TAG_STYLE_MAP_LEDGER,
    TAXONOMY_LEDGER,
)
from tagmap.ledger import read_json, read_ledger
from tagmap.normalization import normalize_tag

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BUCKET_COLORS = {
    'STYLE_ONLY':             '#55A868',
    'STYLE_WITH_DESCRIPTORS': '#4C72B0',
    'DESCRIPTORS_ONLY':       '#DD8452',
    'PURE_INVALID':           '#C44E52',
}

# (stage number, label, ledger file) in pipeline order
STAGE_LEDGERS = [
    (1, 'Raw tags', RAW_TAGS_LEDGER),
    (1, 'Blacklisted tags', REMOVED_TAGS_LEDGER),
    (2, 'Normalized tags', NORMALIZED_TAGS_LEDGER),
    (3, 'Compound interpretations', COMPOUND_LEDGER),
    (4, 'Postprocessed tags', POSTPROCESSED_LEDGER),
    (4, 'Blacklist candidates', BLACKLIST_CANDIDATES_LEDGER),
    (5, 'Raw styles', RAW_STYLES_LEDGER),
    (6, 'Canonical decisions', CANONICAL_MAP_LEDGER),
    (7, 'Hierarchy decisions', HIERARCHY_LEDGER),
    (8, 'Taxonomy entries', TAXONOMY_LEDGER),
    (8, 'Tag-style map', TAG_STYLE_MAP_LEDGER),
]


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------

@st.cache_resource
def load_config(config_path: str) -> PipelineConfig:
    return PipelineConfig.from_file(Path(config_path))


@st.cache_data
def load_ledger_df(path: str, mtime: float) -> pd.DataFrame:
    """Ledger as a DataFrame; mtime is only part of the cache key"""
    return pd.DataFrame(read_ledger(Path(path)))


def ledger_df(config: PipelineConfig, filename: str) -> pd.DataFrame:
    path = config.ledger(filename)
    if not path.exists():
        return pd.DataFrame()
    return load_ledger_df(str(path), path.stat().st_mtime)


@st.cache_data
def load_json_file(path: str, mtime: float):
    return read_json(Path(path))


def count_lines(path: Path) -> int:
    if not path.exists():
        return 0
    with open(path, 'r', encoding='utf-8') as f:
        return sum(1 for line in f if line.strip())


def lookup_expansion(mappings: dict, query: str):
    """(normalized key, expansion terms or None) for a free-typed tag"""
    key = normalize_tag(query)
    return key, mappings.get(key)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def render_pipeline_overview(config: PipelineConfig):
    st.header("Pipeline Overview")

    rows = []
    for stage, label, filename in STAGE_LEDGERS:
        path = config.ledger(filename)
        modified = datetime.fromtimestamp(path.stat().st_mtime) if path.exists() else None
        rows.append({
            'stage': stage,
            'ledger': label,
            'entries': count_lines(path),
            'modified': f"{modified:%b %d %H:%M}" if modified else '-',
            'file': filename,
        })
    overview = pd.DataFrame(rows)

    cols = st.columns(4)
    by_label = dict(zip(overview['ledger'], overview['entries']))
    cols[0].metric("Normalized Tags", f"{by_label['Normalized tags']:,}")
    cols[1].metric("Interpreted", f"{by_label['Compound interpretations']:,}")
    cols[2].metric("Raw Styles", f"{by_label['Raw styles']:,}")
    cols[3].metric("Classified Styles", f"{by_label['Hierarchy decisions']:,}")

    st.divider()

    left, right = st.columns(2)

    with left:
        st.subheader("Ledgers")
        st.dataframe(overview, use_container_width=True, hide_index=True)

    with right:
        st.subheader("Bucket Distribution")
        post = ledger_df(config, POSTPROCESSED_LEDGER)
        if post.empty or 'bucket' not in post.columns:
            st.info("No postprocessed tags yet - run stage 4.")
        else:
            counts = post['bucket'].value_counts()
            ordered = [b for b in BUCKETS if b in counts.index]
            fig = go.Figure(data=[go.Pie(
                labels=ordered,
                values=[int(counts[b]) for b in ordered],
                hole=0.5,
                marker_colors=[BUCKET_COLORS.get(b, '#E8E8E8') for b in ordered],
                textinfo='label+percent',
                hovertemplate='%{label}: %{value} tags (%{percent})<extra></extra>',
                sort=False,
            )])
            fig.update_layout(
                annotations=[dict(text=str(len(post)), x=0.5, y=0.5, font_size=28, showarrow=False)],
                height=420, margin=dict(t=20, b=20, l=20, r=20),
                legend=dict(orientation='h', y=-0.05),
            )
            st.plotly_chart(fig, use_container_width=True)

    # Progress of the resumable stages
    normalized = by_label['Normalized tags']
    raw_styles = by_label['Raw styles']
    st.subheader("LLM Stage Progress")
    progress_cols = st.columns(2)
    if normalized:
        done = by_label['Compound interpretations']
        progress_cols[0].progress(min(done / normalized, 1.0), text=f"Compound: {done}/{normalized}")
    if raw_styles:
        done = by_label['Canonical decisions']
        progress_cols[1].progress(min(done / raw_styles, 1.0), text=f"Canonical: {done}/{raw_styles}")


def render_genres(config: PipelineConfig):
    st.header("Genres")

    summary_path = config.ledger(GENRE_SUMMARY_FILE)
    if not summary_path.exists():
        st.info("No genre summary yet - run stage 8.")
        return
    summary = load_json_file(str(summary_path), summary_path.stat().st_mtime)

    top_n = st.slider("Genres shown", min_value=5, max_value=60, value=20, step=5)

    rows = []
    for genre in summary[:top_n]:
        rows.append({'genre': genre['genre'], 'part': '(own usage)', 'count': genre['own_count']})
        for sub in genre['subgenres']:
            rows.append({'genre': genre['genre'], 'part': sub['name'], 'count': sub['total_count']})
    plot_df = pd.DataFrame(rows)

    if len(plot_df):
        genre_order = [g['genre'] for g in summary[:top_n]]
        fig = px.bar(
            plot_df, y='genre', x='count', color='part', orientation='h',
            category_orders={'genre': genre_order},
        )
        fig.update_layout(height=max(400, 28 * len(genre_order)), showlegend=False,
                          xaxis_title='Tag usage', yaxis_title='', margin=dict(t=20, b=40))
        st.plotly_chart(fig, use_container_width=True)

    st.divider()
    st.subheader("Subgenre Breakdown")
    for genre in summary[:top_n]:
        with st.expander(f"{genre['genre']} - {genre['total_count']:,} "
                         f"({len(genre['subgenres'])} subgenres)"):
            if genre['subgenres']:
                st.dataframe(pd.DataFrame(genre['subgenres']), use_container_width=True, hide_index=True)
            else:
                st.caption("No subgenres")


def render_blacklist_candidates(config: PipelineConfig):
    st.header("Blacklist Candidates")
    st.caption("Tags whose interpretation held only invalid parts. "
               "Review and add to the blacklist file by hand.")

    df = ledger_df(config, BLACKLIST_CANDIDATES_LEDGER)
    if df.empty:
        st.info("No blacklist candidates.")
        return

    df = df.copy()
    df['parts'] = df['segments'].apply(lambda segs: ', '.join(s.get('text', '') for s in segs or []))
    df = df.sort_values('total_count', ascending=False)

    min_count = st.number_input("Minimum usage", min_value=0, value=0, step=1)
    shown = df[df['total_count'] >= min_count]
    st.metric("Candidates", len(shown))
    st.dataframe(shown[['normalized', 'total_count', 'parts']], use_container_width=True, hide_index=True)


def render_mapping_lookup(config: PipelineConfig):
    st.header("Mapping Lookup")

    mapping_path = config.path('final_mapping')
    if not mapping_path.exists():
        st.info("No compiled mapping yet - run stage 9.")
        return
    data = load_json_file(str(mapping_path), mapping_path.stat().st_mtime)
    mappings = data.get('mappings', {})
    st.caption(f"{len(mappings):,} tags | updated {data.get('updated_at', '-')}")

    query, terms = lookup_expansion(mappings, st.text_input("Tag", placeholder="e.g. lo-fi hip-hop"))
    if not query:
        return

    if terms is not None:
        st.success(f"**{query}** expands to: {', '.join(terms)}")
    else:
        st.warning(f"No expansion for '{query}'")

    tag_map = ledger_df(config, TAG_STYLE_MAP_LEDGER)
    if not tag_map.empty:
        matches = tag_map[tag_map['normalized'].str.contains(query, regex=False)]
        if len(matches):
            st.subheader("Matching tags")
            st.dataframe(matches.head(200), use_container_width=True, hide_index=True)

    with st.expander("Raw mapping JSON"):
        st.code(json.dumps({query: mappings.get(query, [])}, indent=2, ensure_ascii=False), language='json')


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

def render_sidebar():
    """Render sidebar and return (config_path, section_name)."""
    with st.sidebar:
        st.title("\U0001F3B5 Tag Taxonomy")
        st.caption("Tag map pipeline review")

        st.divider()

        config_path = st.text_input("Config", value=str(PROJECT_ROOT / 'config.yaml'))

        st.divider()

        section = st.radio(
            "Section",
            ["Pipeline Overview", "Genres", "Blacklist Candidates", "Mapping Lookup"],
            label_visibility='collapsed',
        )

    return config_path, section


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    config_path, section = render_sidebar()
    config = load_config(config_path)

    if section == "Pipeline Overview":
        render_pipeline_overview(config)
    elif section == "Genres":
        render_genres(config)
    elif section == "Blacklist Candidates":
        render_blacklist_candidates(config)
    elif section == "Mapping Lookup":
        render_mapping_lookup(config)


if __name__ == '__main__':
    main()
