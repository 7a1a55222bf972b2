#!/usr/bin/env python3
"""Loads a product catalog into the local assistant database for demos and evaluation."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import random
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv
from discovery_assistant.db import AssistantDB
from discovery_assistant.models import Product
from discovery_assistant.settings import AssistantConfig


COLORS = ["Red", "Blue", "Black", "White", "Green", "Beige", "Navy", "Grey"]
STYLES = ["Classic", "Modern", "Vintage", "Minimal", "Sporty", "Rustic"]
CATALOG = {
    "Fashion": ["Shoes", "Sneakers", "Jacket", "Dress", "Scarf", "Handbag"],
    "Home": ["Lamp", "Rug", "Vase", "Armchair", "Mirror", "Clock"],
    "Electronics": ["Headphones", "Speaker", "Camera", "Smartwatch", "Keyboard"],
    "Outdoors": ["Backpack", "Tent", "Water Bottle", "Hiking Boots"],
}
BRANDS = ["Northwind", "Acme", "Lumen", "Fjord", "Atlas", "Kite"]


def generate_products(count: int, *, seed: int) -> list[Product]:
    rng = random.Random(seed)
    categories = list(CATALOG.items())
    products: list[Product] = []
    for index in range(count):
        category, kinds = categories[index % len(categories)]
        kind = rng.choice(kinds)
        color = rng.choice(COLORS)
        style = rng.choice(STYLES)
        # Roughly one product in eight is a premium item.
        price = round(rng.uniform(520, 1500) if rng.random() < 0.125 else rng.uniform(9, 480), 2)
        product_id = f"sample-{index + 1:05d}"
        products.append(
            Product(
                id=product_id,
                name=f"{color} {style} {kind}",
                description=f"{style} {kind.lower()} in {color.lower()}.",
                price=price,
                image=f"https://picsum.photos/seed/{product_id}/400/400",
                categories=(category, kind),
                brand=rng.choice(BRANDS),
                url=f"https://example.com/products/{product_id}",
                source_index="sample",
            )
        )
    return products


def load_products(path: Path) -> list[Product]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("products", [])
    if not isinstance(raw, list):
        raise ValueError("Catalog file must contain a list of products or {'products': [...]}.")
    return [Product.from_dict(entry) for entry in raw if isinstance(entry, dict) and entry.get("id")]


def main() -> int:
    load_dotenv(ROOT_DIR / ".env")

    parser = argparse.ArgumentParser(description="Seed the local product catalog.")
    parser.add_argument("--input", type=Path, default=None, help="JSON product list to import.")
    parser.add_argument("--count", type=int, default=400, help="Generated products when no input is given.")
    parser.add_argument("--seed", type=int, default=7, help="Random seed for generated products.")
    args = parser.parse_args()

    products = load_products(args.input) if args.input else generate_products(max(1, args.count), seed=args.seed)
    cfg = AssistantConfig.from_env(ROOT_DIR)
    db = AssistantDB(cfg.db_path)
    written = db.upsert_products(products)

    print(f"products written: {written}")
    print(f"database: {cfg.db_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
