# %%
from FeedRec.client import build_embedding_client
from FeedRec.config import FeedRecConfig
from FeedRec.index import FaissVectorIndex
from FeedRec.recommend import EmbeddingRecommender, FullScanSource, VectorIndexSource
from FeedRec.store import load_snapshot

import asyncio
import logging
import sys
import time
import pandas as pd

logging.basicConfig(level=logging.WARNING)


# %%
# -------- Helper: latency and overlap of both strategies for one query --------
async def evaluate_one_query(recommender, full_scan, vector_index, query, threshold, limit):
    row = {"query": query}

    embedding = await recommender.embedding_client.generate_embedding(query)

    # Full-scan strategy
    start = time.time()
    result = await recommender.recommend_from_embedding(
        embedding, threshold=threshold, limit=limit, source=full_scan
    )
    row["latency_full_scan"] = time.time() - start
    row["error_full_scan"] = result.error
    full_scan_ids = [item.id for item in result.items]
    row["len_full_scan"] = len(full_scan_ids)

    # Vector index strategy
    start = time.time()
    result = await recommender.recommend_from_embedding(
        embedding, threshold=threshold, limit=limit, source=vector_index
    )
    row["latency_index"] = time.time() - start
    row["error_index"] = result.error
    index_ids = [item.id for item in result.items]
    row["len_index"] = len(index_ids)

    overlap = set(full_scan_ids) & set(index_ids)
    row["len_overlap"] = len(overlap)
    # do both strategies agree on the best match
    row["same_top1"] = bool(full_scan_ids and index_ids and full_scan_ids[0] == index_ids[0])

    return full_scan_ids, index_ids, row


# %%
async def main(snapshot_path: str, queries_path: str):
    config = FeedRecConfig.from_env()

    store = load_snapshot(snapshot_path)
    items = await store.get_all_items_with_embeddings()
    index = FaissVectorIndex.from_items(items)
    print(f"Loaded {len(store)} posts, {len(index)} indexed.")

    full_scan = FullScanSource(store)
    vector_index = VectorIndexSource(index, store)
    recommender = EmbeddingRecommender(build_embedding_client(config), full_scan, config)

    queries = pd.read_csv(queries_path)

    results = []
    all_rows = []
    for item in queries.itertuples(index=False):
        full_scan_ids, index_ids, row = await evaluate_one_query(
            recommender,
            full_scan,
            vector_index,
            item.query,
            config.similarity_threshold,
            config.recommendation_limit,
        )
        all_rows.append(row)
        results.append({"query": item.query, "full_scan": full_scan_ids, "index": index_ids})
        print(f"✅ Finished: {item.query}, results:")
        print(list(row.items())[1:])   # skip the query itself

    pd.DataFrame(all_rows).to_csv("evaluation_strategies_data.csv", index=False)
    pd.DataFrame(results).to_csv("evaluation_strategies_lists.csv", index=False)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        sys.exit("usage: evaluation_strategies.py SNAPSHOT_JSON QUERIES_CSV")
    asyncio.run(main(sys.argv[1], sys.argv[2]))
