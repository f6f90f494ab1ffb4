#!/usr/bin/env python3
"""
Seed script: generates random catalog products and pushes them through the bulk save API.
Ensures: the product index has data for search and the category reports.
Run: API must be running.
  python scripts/seed_products.py
  python scripts/seed_products.py --count 2000 --batch-size 200
"""

import argparse
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

API_BASE = "http://localhost:8000/api/v1"

# category -> sub-categories -> product name stems
CATALOG = {
    "手机": {
        "智能手机": ["旗舰手机", "5G手机", "拍照手机", "游戏手机"],
        "老人机": ["大字老人机", "长待机手机"],
    },
    "电脑": {
        "笔记本": ["轻薄笔记本", "游戏本", "MacBook Pro", "ThinkPad"],
        "台式机": ["办公台式机", "电竞主机"],
        "配件": ["机械键盘", "无线鼠标", "27寸显示器", "USB-C 扩展坞"],
    },
    "家电": {
        "厨房电器": ["咖啡机", "空气炸锅", "电热水壶", "破壁机"],
        "生活电器": ["扫地机器人", "空气净化器", "吸尘器"],
    },
    "图书": {
        "编程": ["Python 编程入门", "Elasticsearch 实战", "设计模式"],
        "文学": ["长篇小说", "散文集"],
    },
}

TAGS = ["新品", "包邮", "爆款", "限时折扣", "5G", "智能", "自营"]

DESCRIPTIONS = [
    "品质保证，支持七天无理由退换。",
    "高性价比之选，适合学生和上班族。",
    "官方正品，全国联保。",
    "轻薄便携，续航持久。",
    "Great for home office and remote work.",
    "High quality build and reliable performance.",
]


def random_product(n: int) -> dict:
    category = random.choice(list(CATALOG))
    sub_category = random.choice(list(CATALOG[category]))
    name = random.choice(CATALOG[category][sub_category])
    created = datetime.now() - timedelta(days=random.randint(0, 365), seconds=random.randint(0, 86399))
    return {
        "id": str(100000 + n),
        "productName": f"{name} {random.randint(1, 999)}" if random.random() > 0.5 else name,
        "category": category,
        "subCategory": sub_category,
        "price": random.choice([9.9, 49.0, 99.0, 199.0, 499.0, 999.0, 2999.99, 5999.0, 9999.0]),
        "stock": random.randint(0, 500),
        "sales": random.randint(0, 10000),
        "tags": random.sample(TAGS, k=random.randint(0, 3)),
        "createTime": created.strftime("%Y-%m-%d %H:%M:%S"),
        "description": random.choice(DESCRIPTIONS),
        "merchantId": f"merchant_{random.randint(1, 20):03d}",
        "score": round(random.uniform(3.0, 5.0), 1),
    }


def main():
    ap = argparse.ArgumentParser(description="Seed products via the bulk save API")
    ap.add_argument("--count", type=int, default=500, help="Number of products to create")
    ap.add_argument("--batch-size", type=int, default=100, help="Products per bulk request")
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    ap.add_argument("--create-index", action="store_true", help="Call the index create endpoint first")
    args = ap.parse_args()

    saved = 0
    errors = []

    with httpx.Client(base_url=args.base_url, timeout=60.0) as client:
        if args.create_index:
            r = client.post("/product/index/create")
            print(f"Create index: {r.status_code} {r.text[:200]}")
            if r.status_code != 200:
                sys.exit(1)

        products = [random_product(i) for i in range(args.count)]
        print(f"Saving {len(products)} products in batches of {args.batch_size}...")
        for start in range(0, len(products), args.batch_size):
            batch = products[start:start + args.batch_size]
            try:
                r = client.post("/product/batch/save", json=batch)
                if r.status_code != 200:
                    errors.append(f"Batch at {start}: {r.status_code} {r.text[:80]}")
                    continue
                body = r.json()
                saved += body.get("succeeded", 0)
                for item in body.get("errors", []):
                    errors.append(f"Product {item.get('id')}: {item.get('reason')}")
            except httpx.HTTPError as e:
                errors.append(f"Batch at {start}: {e}")
            print(f"  ... {min(start + args.batch_size, len(products))} sent, {saved} saved")

    print(f"\nDone. Products saved: {saved}")
    if errors:
        print(f"Errors ({len(errors)}):")
        for e in errors[:15]:
            print("  ", e)
        if len(errors) > 15:
            print("  ... and", len(errors) - 15, "more")
    print("\nTry: curl -s 'http://localhost:8000/api/v1/product/agg/category'")


if __name__ == "__main__":
    main()
