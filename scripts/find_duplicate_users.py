"""
List usernames and emails that belong to both a VMT and an Encompass account.
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
from sso.migration import find_duplicate_users

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Find users present in both VMT and Encompass"
    )
    parser.add_argument("--enc-uri", default=settings.enc_db_uri)
    parser.add_argument("--vmt-uri", default=settings.vmt_db_uri)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    stores = []
    try:
        enc_users = MongoUserStore(args.enc_uri)
        stores.append(enc_users)
        vmt_users = MongoUserStore(args.vmt_uri)
        stores.append(vmt_users)
        report = find_duplicate_users(enc_users, vmt_users)
    except Exception:
        logger.exception("err find duplicate users")
        return 1
    finally:
        for store in stores:
            store.close()

    logger.info(
        "%d shared usernames, %d shared emails",
        len(report.usernames),
        len(report.emails),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
