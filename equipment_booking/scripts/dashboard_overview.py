#!/usr/bin/env python3
"""Read-only rental dashboard overview for an equipment rental backend."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from equipment_booking.client import settings
from equipment_booking.client.deps import get_backend_client
from equipment_booking.client.errors import BackendError
from equipment_booking.schemas.rentals import Rental, RentalStatus
from equipment_booking.services.rental_lifecycle import DashboardSnapshot, RentalLifecycleController


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _describe_rental(rental: Rental) -> str:
    customer = rental.customer.full_name if rental.customer else "unknown customer"
    equipment = rental.equipment.name if rental.equipment else "unknown equipment"
    return (
        f"#{rental.id} {equipment} x{rental.quantity} for {customer} "
        f"{rental.startDate.isoformat()}..{rental.endDate.isoformat()} total={rental.totalAmount}"
    )


def _print_stats(snapshot: DashboardSnapshot) -> None:
    stats = snapshot.stats
    _print_section("Dashboard")
    print(f"Active rentals:    {stats.active}")
    print(f"Pending approvals: {stats.pending}")
    print(f"Overdue rentals:   {stats.overdue}")
    print(f"Total revenue:     {stats.revenue:.2f}")

    _print_section("Rentals By Status")
    for status in RentalStatus:
        print(f"{status.value:<10} {stats.by_status.get(status, 0)}")

    _print_section("Inventory")
    print(f"Equipment items: {len(snapshot.equipment)}")
    print(f"Customers:       {len(snapshot.customers)}")


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {raw!r}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")
    return value


def _print_overdue(rentals: list[Rental], limit: int) -> None:
    _print_section("Overdue")
    if not rentals:
        print("none")
        return
    print(f"{len(rentals)} overdue, listing {min(limit, len(rentals))}")
    for rental in rentals[:limit]:
        print(f"  - {_describe_rental(rental)}")


async def _run(base_url: str, limit: int) -> int:
    async with get_backend_client(base_url) as backend:
        controller = RentalLifecycleController(backend)
        try:
            snapshot = await controller.refresh()
            overdue = await controller.overdue_rentals()
        except BackendError as exc:
            print(f"Could not load dashboard from {base_url}: {exc}")
            return 3
    _print_stats(snapshot)
    _print_overdue(overdue, limit)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Equipment rental dashboard overview")
    parser.add_argument("--base-url", default=settings.API_BASE_URL, help="Backend API root, e.g. http://localhost:8080/api")
    parser.add_argument("--limit", type=_non_negative_int, default=10, help="Maximum overdue rentals to list (0 lists none)")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    base_url = (args.base_url or "").strip()
    if not base_url:
        print("EQUIPMENT_API_BASE_URL is not set. Provide --base-url or export env first.")
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(_run(base_url, args.limit))


if __name__ == "__main__":
    sys.exit(main())
