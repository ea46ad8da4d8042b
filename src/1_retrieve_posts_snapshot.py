import json
import os
import sys

import requests

# Realtime Database URL, e.g. https://<project>-default-rtdb.europe-west1.firebasedatabase.app
database_url = os.getenv("FEEDREC_DATABASE_URL")
if not database_url:
    sys.exit("Set FEEDREC_DATABASE_URL first.")

out_path = sys.argv[1] if len(sys.argv) > 1 else "../data/posts_snapshot.json"

# Send GET request
response = requests.get(f"{database_url.rstrip('/')}/posts.json", timeout=30)

# Ensure success
response.raise_for_status()

# Parse JSON, keyed by post id
posts = response.json() or {}
records = [{"id": key, **value} for key, value in posts.items() if isinstance(value, dict)]

with_embedding = sum(1 for r in records if r.get("embedding"))
print(f"Total posts: {len(records)} ({with_embedding} with embeddings)")

with open(out_path, "w", encoding="utf-8") as f:
    json.dump(records, f, indent=2, ensure_ascii=False)
