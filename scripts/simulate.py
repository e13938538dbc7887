"""
Rush Hour Simulation Script

Signs up a crowd of customers and has them all check out at once, to
exercise concurrent order creation and the change feed.
Run from project root: python scripts/simulate.py

Author: Your Name
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import httpx

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_CUSTOMERS = 25

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave"]
ORDER_TYPES = ["dine_in", "takeaway", "delivery"]
NOTES = [None, "Extra napkins", "No onions", "Ring doorbell", "Allergic to nuts"]


def generate_random_customer() -> dict[str, str]:
    """Generate random sign-up details."""
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "email": f"{first.lower()}.{last.lower()}.{uuid.uuid4().hex[:8]}@example.com",
        "password": "secret123",
        "name": f"{first} {last}",
        "phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def generate_cart(menu: list[dict], branches: list[dict]) -> dict[str, Any]:
    """Pick a branch, an order type and a few menu lines."""
    order_type = random.choice(ORDER_TYPES)
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    return {
        "branch_id": random.choice(branches)["id"],
        "order_type": order_type,
        "items": [{"menu_id": item["id"], "quantity": random.randint(1, 3)} for item in picks],
        "delivery_address": (
            f"{random.randint(1, 999)} {random.choice(STREETS)}" if order_type == "delivery" else None
        ),
        "notes": random.choice(NOTES),
    }


async def run_customer(
    client: httpx.AsyncClient,
    num: int,
    menu: list[dict],
    branches: list[dict],
) -> dict[str, Any]:
    """Sign up, quote and check out one customer."""
    start_time = time.time()
    try:
        response = await client.post(f"{API_BASE_URL}/auth/sign-up", json=generate_random_customer())
        if response.status_code != 201:
            return _failure(num, start_time, f"sign-up: {response.text[:100]}")
        token = response.json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        cart = generate_cart(menu, branches)
        quote = await client.post(f"{API_BASE_URL}/api/cart/quote", json=cart)
        if quote.status_code != 200:
            return _failure(num, start_time, f"quote: {quote.text[:100]}")

        response = await client.post(f"{API_BASE_URL}/api/orders", json=cart, headers=headers, timeout=30.0)
        if response.status_code != 201:
            return _failure(num, start_time, f"checkout: {response.text[:100]}")

        order = response.json()["order"]
        if order["total"] != quote.json()["total"]:
            return _failure(num, start_time, "checkout total differs from quote")

        return {
            "num": num,
            "success": True,
            "order_id": order["id"],
            "order_type": order["order_type"],
            "total": Decimal(order["total"]),
            "time": round(time.time() - start_time, 3),
        }
    except httpx.HTTPError as e:
        return _failure(num, start_time, str(e)[:100])


def _failure(num: int, start_time: float, error: str) -> dict[str, Any]:
    return {
        "num": num,
        "success": False,
        "error": error,
        "time": round(time.time() - start_time, 3),
    }


async def preflight(client: httpx.AsyncClient) -> Optional[tuple[list[dict], list[dict]]]:
    """Health check plus catalog download."""
    print("\n1️⃣ Health Check...")
    response = await client.get(f"{API_BASE_URL}/health")
    if response.status_code != 200:
        print(f"   ❌ Failed: {response.text}")
        return None
    data = response.json()
    print(f"   ✅ Status: {data.get('status')}")
    print(f"   Database: {data.get('database')}")
    print(f"   Change Feed: {data.get('change_feed')}")
    print(f"   Auth: {data.get('auth_service')}")

    print("\n2️⃣ Catalog...")
    branches = (await client.get(f"{API_BASE_URL}/api/branches")).json()
    menu = (await client.get(f"{API_BASE_URL}/api/menu")).json()
    print(f"   ✅ {len(branches)} branches, {len(menu)} available menu items")
    if not branches or not menu:
        print("   ❌ Catalog is empty. Start the API with SEED_CATALOG=true")
        return None
    return menu, branches


async def run_simulation(num_customers: int = TOTAL_CUSTOMERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"📋 Customers: {num_customers}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        catalog = await preflight(client)
        if catalog is None:
            sys.exit(1)
        menu, branches = catalog

        print("\n🚀 Firing checkouts...\n")
        start_time = time.time()
        results = await asyncio.gather(*[
            run_customer(client, i + 1, menu, branches) for i in range(num_customers)
        ])
        total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_customers}")
    print(f"❌ Failed Orders: {len(failed)}/{num_customers}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        by_type = {t: len([r for r in successful if r["order_type"] == t]) for t in ORDER_TYPES}
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(r['time'] for r in successful) / len(successful), 3)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   By type: {by_type}")
        print(f"   💰 Total Revenue: ${sum(r['total'] for r in successful)}")

    if failed:
        print(f"\n⚠️  Failed Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Customer #{f['num']}: {f['error']}")

    print("\n" + "=" * 70)
    return {
        "total": num_customers,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of customers")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    summary = asyncio.run(run_simulation(args.customers))
    sys.exit(0 if summary["failed"] == 0 else 1)
