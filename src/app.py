import time
import json
import asyncio
import logging
import nest_asyncio
nest_asyncio.apply()

import streamlit as st
import pandas as pd
import re

# ---- project modules ----
# Ensure PYTHONPATH includes src/ (or install the project with pip install -e .)
from FeedRec.client import build_embedding_client
from FeedRec.config import FeedRecConfig
from FeedRec.errors import EmbeddingGenerationError, FeedRecError
from FeedRec.index import FaissVectorIndex
from FeedRec.preferences import update_preference
from FeedRec.recommend import EmbeddingRecommender, FullScanSource, VectorIndexSource
from FeedRec.store import load_snapshot

logging.basicConfig(level=logging.WARNING)

# ---------------------- helpers ----------------------
def arun(coro):
    """Run async coroutines safely from Streamlit."""
    return asyncio.run(coro)

def sanitize_query(query: str, max_len: int = 30) -> str:
    """
    Cleans the query text for safe filename use.
    """
    clean = re.sub(r'[^a-zA-Z0-9\s]', '', query)
    clean = "_".join(clean.split())
    return clean[:max_len]

def to_csv_filename(query: str, prefix: str = "results"):
    qpart = sanitize_query(query)
    ts = time.strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{qpart}_{ts}.csv"

def parse_embedding(text: str):
    """Parse a JSON list of numbers typed into a text box."""
    value = json.loads(text)
    if not isinstance(value, list) or not all(isinstance(x, (int, float)) for x in value):
        raise ValueError("embedding must be a JSON list of numbers")
    return [float(x) for x in value]

# ---------------------- page config ----------------------
st.set_page_config(page_title="FeedRec Explorer", layout="wide")
st.title("FeedRec Explorer")
st.caption("Post recommendations: full scan (exact cosine) vs FAISS vector index")

# ---------------------- SIDEBAR: Data & Index ----------------------
st.sidebar.header("Data & FAISS Index")

data_path = st.sidebar.text_input("Posts snapshot (JSON)", value="posts_snapshot.json")

@st.cache_resource(show_spinner=True)
def load_system(snapshot_path: str):
    config = FeedRecConfig.from_env()
    store = load_snapshot(snapshot_path)
    items = arun(store.get_all_items_with_embeddings())
    index = FaissVectorIndex.from_items(items)
    full_scan = FullScanSource(store)
    vector_index = VectorIndexSource(index, store)
    rec = EmbeddingRecommender(build_embedding_client(config), full_scan, config)
    return rec, store, index, full_scan, vector_index

try:
    recommender, store, index, full_scan, vector_index = load_system(data_path)
except (OSError, ValueError) as e:
    st.error(f"Could not load snapshot: {e}")
    st.stop()

st.sidebar.success(f"{len(store)} posts loaded, {len(index)} indexed.")

if st.sidebar.button("Rebuild FAISS index", type="primary", use_container_width=True):
    t0 = time.time()
    index.build_faiss_index()
    st.sidebar.success(f"FAISS built in {time.time()-t0:.2f}s")

# ---------------------- MAIN CONTROLS ----------------------
st.subheader("Search")

input_mode = st.radio("Query by", options=["Text", "Embedding (JSON list)"], index=0, horizontal=True)
q = st.text_area(
    "Query",
    placeholder="e.g., minimalist interior photo with warm light" if input_mode == "Text" else "[0.12, -0.03, ...]",
    height=90
)

strategy = st.radio(
    "Retrieval strategy",
    options=["Full scan", "FAISS index"],
    index=0,
    help="Full scan: exact cosine over every post. FAISS: nearest neighbours from the vector index."
)

col1, col2, col3 = st.columns(3)
with col1:
    threshold = st.slider("Similarity threshold", min_value=-1.0, max_value=1.0,
                          value=recommender.config.similarity_threshold, step=0.05)
with col2:
    limit = st.slider("Limit", min_value=1, max_value=50, value=recommender.config.recommendation_limit, step=1)
with col3:
    exclude_id = st.text_input("Exclude post id (optional)", value="").strip() or None

download_csv_bytes = None
download_csv_name = None

# ---------------------- RUN ----------------------
if st.button("Run recommendation", type="primary", use_container_width=True) and q.strip():
    source = full_scan if strategy == "Full scan" else vector_index
    st.info(f"Running {strategy}…")
    t0 = time.time()
    try:
        if input_mode == "Text":
            result = arun(recommender.recommend_from_text(
                q, threshold=threshold, limit=limit, exclude_id=exclude_id, source=source))
        else:
            result = arun(recommender.recommend_from_embedding(
                parse_embedding(q), threshold=threshold, limit=limit, exclude_id=exclude_id, source=source))
        elapsed = time.time() - t0

        if result.error:
            st.warning(f"Recommendation degraded to an empty result: {result.error}")
        else:
            st.success(f"{len(result.items)} posts in {elapsed:.2f}s")

        rows = [{k: v for k, v in item.to_dict().items() if k != "embedding"} for item in result.items]
        table = pd.DataFrame(rows)
        st.dataframe(table)
        download_csv_name = to_csv_filename(query=q if input_mode == "Text" else "embedding", prefix=strategy.replace(" ", "_").lower())
        download_csv_bytes = table.to_csv(index=False).encode("utf-8")

    except EmbeddingGenerationError as e:
        st.error(f"Could not embed the query: {e}")
    except (FeedRecError, ValueError) as e:
        st.error(str(e))

# ---------------------- PREFERENCE PREVIEW ----------------------
with st.expander("Preference update preview"):
    st.write("Move a user vector toward or away from a post's embedding (nothing is saved).")
    user_vec_text = st.text_input("User embedding (JSON list)", value="[1, 0]")
    post_vec_text = st.text_input("Post embedding (JSON list)", value="[0, 1]")
    alpha = st.number_input("alpha", value=0.5, step=0.05)
    direction = st.selectbox("direction", ["toward", "away"])
    if st.button("Preview update"):
        try:
            updated = update_preference(parse_embedding(user_vec_text), parse_embedding(post_vec_text), alpha, direction)
            st.code(json.dumps(updated))
        except (FeedRecError, ValueError) as e:
            st.error(str(e))

# ---------------------- DOWNLOAD BUTTON ----------------------
st.divider()
st.subheader("Export")
if download_csv_bytes is not None:
    st.download_button(
        label="⬇️ Download results table (CSV)",
        data=download_csv_bytes,
        file_name=download_csv_name,
        mime="text/csv",
        use_container_width=True
    )
else:
    st.caption("Run a query to enable CSV download.")

# ---------------------- Footer ----------------------
with st.expander("About the strategies"):
    st.write("""
- **Full scan**: loads every post with an embedding and ranks by exact cosine similarity; skips the query's own vector.
- **FAISS index**: nearest-neighbour search in the vector index; a perfect score of 1 is treated as the query's own post.
    """)
