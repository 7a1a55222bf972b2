#!/usr/bin/env python3
"""Runs the discovery mixer over sample queries and reports composition, placement and latency."""

from __future__ import annotations

import argparse
from collections import Counter
import json
from pathlib import Path
import random
import statistics
import sys
import time

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv
from discovery_assistant.db import AssistantDB
from discovery_assistant.mixer import DiscoveryMixer
from discovery_assistant.models import DiscoveryPercentage
from discovery_assistant.pool import CatalogDiscoveryPool
from discovery_assistant.search import CatalogSearchProvider
from discovery_assistant.settings import AssistantConfig


DEFAULT_QUERIES = [
    "red shoes",
    "modern lamp",
    "black jacket",
    "vintage camera",
    "hiking backpack",
    "minimal clock",
    "navy dress",
    "wireless headphones",
]


def evaluate(
    search_provider: CatalogSearchProvider,
    mixer: DiscoveryMixer,
    queries: list[str],
    top_k: int,
) -> dict:
    results = []
    latency_by_pct: dict[int, list[float]] = {int(pct): [] for pct in DiscoveryPercentage}
    reasons: Counter[str] = Counter()

    for query in queries:
        personalized = search_provider.search(query, top_k=top_k)
        for pct in DiscoveryPercentage:
            start = time.perf_counter()
            mixed = mixer.mix(personalized, pct, query)
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            latency_by_pct[int(pct)].append(elapsed_ms)

            positions = [index for index, item in enumerate(mixed) if item.is_inspiration]
            reasons.update(item.inspiration_reason.value for item in mixed if item.inspiration_reason)
            results.append(
                {
                    "query": query,
                    "discovery_percentage": int(pct),
                    "personalized_in": len(personalized),
                    "output": len(mixed),
                    "inspiration": len(positions),
                    "inspiration_positions": positions,
                    "latency_ms": round(elapsed_ms, 2),
                }
            )

    summary = {
        "queries": len(queries),
        "latency_ms_avg": {
            str(pct): round(statistics.mean(values), 2) if values else 0.0
            for pct, values in latency_by_pct.items()
        },
        "inspiration_reasons": dict(reasons),
        "length_preserved": all(row["output"] == row["personalized_in"] for row in results),
    }
    return {"summary": summary, "results": results}


def main() -> int:
    load_dotenv(ROOT_DIR / ".env")

    parser = argparse.ArgumentParser(description="Evaluate discovery mixing on the local catalog.")
    parser.add_argument("--top-k", type=int, default=20, help="Personalized results per query.")
    parser.add_argument("--seed", type=int, default=42, help="Shuffle seed for outlier selection.")
    parser.add_argument(
        "--output",
        type=Path,
        default=ROOT_DIR / "docs" / "discovery_eval_last_run.json",
        help="Where to write JSON evaluation results.",
    )
    parser.add_argument(
        "--query",
        action="append",
        default=[],
        help="Custom query (can be passed multiple times).",
    )
    args = parser.parse_args()

    cfg = AssistantConfig.from_env(ROOT_DIR)
    db = AssistantDB(cfg.db_path)
    mixer = DiscoveryMixer(
        CatalogDiscoveryPool(db),
        rng=random.Random(args.seed),
        pool_timeout_seconds=cfg.pool_timeout_seconds,
    )
    queries = args.query if args.query else DEFAULT_QUERIES

    payload = evaluate(CatalogSearchProvider(db), mixer, queries, max(1, args.top_k))
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    summary = payload["summary"]
    print("Discovery Mix Evaluation")
    print(f"queries: {summary['queries']}")
    for pct, latency in summary["latency_ms_avg"].items():
        print(f"latency avg at {pct}%: {latency} ms")
    print(f"inspiration reasons: {summary['inspiration_reasons']}")
    print(f"length preserved: {summary['length_preserved']}")
    print(f"saved: {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
