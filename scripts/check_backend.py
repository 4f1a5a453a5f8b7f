#!/usr/bin/env python3
"""
Backend connection check
- Health endpoint
- Tickets listing
- Notifications unread count
- Ticket categories
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

from student_support.config import get_settings  # noqa: E402
from student_support.services import (  # noqa: E402
    ApiClient,
    NotificationService,
    TicketCategoriesService,
    TicketService,
)


async def run_checks() -> dict:
    settings = get_settings()
    results = {
        "health": {"status": "❌", "message": ""},
        "tickets": {"status": "❌", "message": ""},
        "notifications": {"status": "❌", "message": ""},
        "categories": {"status": "❌", "message": ""},
    }

    async with ApiClient() as api:
        print("\n1️⃣  Testing health endpoint...")
        if await api.health_check():
            results["health"]["status"] = "✅"
            results["health"]["message"] = f"Connected to {settings.API_URL}"
        else:
            results["health"]["message"] = f"No healthy backend at {settings.API_URL}"

        if not settings.api_token:
            for name in ("tickets", "notifications", "categories"):
                results[name]["status"] = "⚠️"
                results[name]["message"] = "API_TOKEN not set, skipped"
            return results

        print("\n2️⃣  Testing tickets listing...")
        response = await TicketService(api).get_tickets({"per_page": 1})
        if response.success:
            total = (response.get("pagination") or {}).get("total", 0)
            results["tickets"]["status"] = "✅"
            results["tickets"]["message"] = f"{total} tickets visible"
        else:
            results["tickets"]["message"] = f"Error: {response.message[:100]}"

        print("\n3️⃣  Testing notifications...")
        response = await NotificationService(api).get_unread_count()
        if response.success:
            results["notifications"]["status"] = "✅"
            results["notifications"]["message"] = f"{response.get('unread_count', 0)} unread"
        else:
            results["notifications"]["message"] = f"Error: {response.message[:100]}"

        print("\n4️⃣  Testing ticket categories...")
        response = await TicketCategoriesService(api).get_categories()
        if response.success:
            results["categories"]["status"] = "✅"
            results["categories"]["message"] = f"{len(response.get('categories', []))} categories"
        elif response.status == 403:
            results["categories"]["status"] = "⚠️"
            results["categories"]["message"] = "Admin role required"
        else:
            results["categories"]["message"] = f"Error: {response.message[:100]}"

    return results


def main() -> int:
    print("=" * 60)
    print("🔍 Student Support - Backend Connection Check")
    print("=" * 60)

    results = asyncio.run(run_checks())

    print("\n" + "=" * 60)
    print("📊 Results")
    print("=" * 60)
    for name, result in results.items():
        print(f"{result['status']} {name:<15} {result['message']}")

    failures = [name for name, result in results.items() if result["status"] == "❌"]
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
