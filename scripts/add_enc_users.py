"""
Give every Encompass user an SSO account.

Encompass users already related to an SSO account are skipped, users whose
VMT account already has an SSO account are linked to it, and everyone else
gets a new SSO account copied from their Encompass record.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sso.config import get_settings
from sso.db import MongoUserStore
from sso.migration import add_enc_users

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Create or link SSO accounts for Encompass users"
    )
    parser.add_argument("--sso-uri", default=settings.sso_db_uri)
    parser.add_argument("--enc-uri", default=settings.enc_db_uri)
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.migration_workers,
        help="Users processed in parallel",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    stores = []
    try:
        sso_users = MongoUserStore(args.sso_uri)
        stores.append(sso_users)
        enc_users = MongoUserStore(args.enc_uri)
        stores.append(enc_users)
        result = add_enc_users(
            sso_users, enc_users, max_workers=args.workers, dry_run=args.dry_run
        )
    except Exception:
        logger.exception("Adding enc users failed")
        return 1
    finally:
        for store in stores:
            store.close()

    if result.dry_run:
        logger.info("Dry run: no documents were written")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
