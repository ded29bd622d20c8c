#!/usr/bin/env python3
"""
Catalog seeding script.
Loads the sample cars and properties into the backend listings table.
"""

import asyncio
import argparse
import getpass
import json
import logging
import os
import sys
from pathlib import Path

# Add the app directory to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from app.config import settings
from app.backend import create_backend_client, close_backend_client, check_backend_connection
from app.data import SAMPLE_LISTINGS
from app.schemas.listing import ListingCreate
from app.services.auth import AuthService
from app.services.listing import ListingService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class CatalogSeeder:
    """Inserts sample listings as a signed-in admin."""

    def __init__(self, email: str, password: str):
        self.email = email
        self.password = password

    async def seed(self) -> int:
        """
        Insert sample listings whose titles are not in the catalog yet.

        Returns:
            Number of listings inserted
        """
        anon_client = await create_backend_client()
        try:
            session = await AuthService(anon_client).sign_in(self.email, self.password)
        finally:
            await close_backend_client(anon_client)

        access_token = session["access_token"]
        client = await create_backend_client(access_token)
        try:
            auth_service = AuthService(client)
            user = await auth_service.get_current_user(access_token)
            if not await auth_service.is_admin(user):
                raise RuntimeError(f"{user.email} does not have admin privileges")

            listing_service = ListingService(client)
            inserted = 0
            for sample in SAMPLE_LISTINGS:
                existing = await listing_service.listing_repo.get_multi(
                    limit=1, filters={"title": sample["title"]}
                )
                if existing:
                    logger.info(f"Listing already exists, skipping: {sample['title']}")
                    continue

                listing = await listing_service.create_listing(ListingCreate(**sample), user)
                logger.info(f"Inserted {listing.type.value}: {listing.title} ({listing.formatted_price})")
                inserted += 1

            return inserted
        finally:
            await close_backend_client(client)

    @staticmethod
    def dry_run() -> None:
        """Validate and print the sample listings without touching the backend."""
        for sample in SAMPLE_LISTINGS:
            listing = ListingCreate(**sample)
            print(json.dumps(listing.model_dump(mode="json"), indent=2, ensure_ascii=False))


def main():
    """Main CLI interface."""
    parser = argparse.ArgumentParser(description="Seed the marketplace catalog with sample listings")
    parser.add_argument("--dry-run", action="store_true", help="Print the listings that would be inserted")
    parser.add_argument("--check", action="store_true", help="Only test the backend connection")
    parser.add_argument("--email", default=os.getenv("SEED_ADMIN_EMAIL"), help="Admin account email")
    parser.add_argument(
        "--password",
        default=os.getenv("SEED_ADMIN_PASSWORD"),
        help="Admin account password (prompted when omitted)"
    )

    args = parser.parse_args()

    try:
        if args.check:
            connected = asyncio.run(check_backend_connection())
            print(f"Backend {settings.supabase_host}: {'reachable' if connected else 'unreachable'}")
            sys.exit(0 if connected else 1)

        if args.dry_run:
            CatalogSeeder.dry_run()
            return

        if not args.email:
            parser.error("--email or SEED_ADMIN_EMAIL is required to seed")

        password = args.password or getpass.getpass(f"Password for {args.email}: ")
        inserted = asyncio.run(CatalogSeeder(args.email, password).seed())
        logger.info(f"Catalog seeded: {inserted} listing(s) inserted")

    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
