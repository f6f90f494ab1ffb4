#!/usr/bin/env python3
"""
Create the Elasticsearch product index with raw HTTP (no Python ES client).
Useful when the API is not running yet, or to recreate the index from scratch:
  python scripts/create_product_index.py
  python scripts/create_product_index.py --reset

Reads ELASTICSEARCH_URL, PRODUCT_INDEX and analyzer settings from .env (default http://localhost:9200).
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from product_search.config import get_settings
from product_search.search.elasticsearch_client import es_client_options, product_index_mappings


def main():
    ap = argparse.ArgumentParser(description="Create the product index with its mapping")
    ap.add_argument("--reset", action="store_true", help="Delete the index first if it exists")
    ap.add_argument("--replicas", type=int, default=None, help="number_of_replicas (use 0 on a single node)")
    args = ap.parse_args()

    settings = get_settings()
    opts = es_client_options(settings)
    base = opts["hosts"][0].rstrip("/")
    index = settings.product_index
    url = f"{base}/{index}"

    body = {"mappings": product_index_mappings(settings)}
    if args.replicas is not None:
        body["settings"] = {"index": {"number_of_replicas": args.replicas}}

    with httpx.Client(timeout=30.0, auth=opts.get("basic_auth"), verify=opts["verify_certs"]) as client:
        r = client.head(url)
        if r.status_code == 200:
            if not args.reset:
                print(f"Index '{index}' already exists. Use --reset to recreate it.")
                return
            r = client.delete(url)
            if r.status_code != 200:
                print(f"Failed to delete index: {r.status_code}")
                print(r.text[:500])
                sys.exit(1)
            print(f"Deleted index '{index}'.")
        r = client.put(url, json=body)
        if r.status_code not in (200, 201):
            print(f"Failed to create index: {r.status_code}")
            print(r.text[:500])
            sys.exit(1)
    print(f"Created index '{index}'.")
    print("Run: python scripts/seed_products.py   (API must be running)")


if __name__ == "__main__":
    main()
