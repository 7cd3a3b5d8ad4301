"""
Seed script for the Hack-a-Problem mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock
  - Skip the sample image downloads: python scripts/seed_db.py --apply --no-images

Behavior:
  - Uses the same sample problems the app inserts on startup.
  - Only writes when the problems collection is empty.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and `USE_MOCK_DB=false` are set in `.env`.
"""

import argparse

from app.core.settings import settings
from app.services.problem_store import ProblemStore
from app.services.sample_data import build_sample_documents, seed_sample_problems


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    parser.add_argument("--no-images", action="store_true", help="Do not download the sample images")
    args = parser.parse_args()

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        # Settings is read once at import, so patching the instance is enough
        settings.USE_MOCK_DB = True

    for document in build_sample_documents():
        print(f"Preparing: problems/{document['problem_id']} ({document['title']})")

    if not args.apply:
        print("Dry run complete. Re-run with --apply to write to DB.")
        return

    inserted = seed_sample_problems(ProblemStore(), download_images=not args.no_images)
    if inserted:
        print(f"Seeding completed: {inserted} problems written.")
    else:
        print("Problems collection is not empty, nothing written.")


if __name__ == "__main__":
    main()
