"""
One-off routines that reconcile Encompass and VMT users with the SSO store.

Every routine loads the whole `users` collection it iterates over and handles
each record as an independent unit of work on a thread pool. The first error
raised by any record propagates to the caller.
"""

from __future__ import annotations

import concurrent.futures
import enum
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, TypeVar

from sso.db import UserStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 8
VMT_TEMP_ACCOUNT_FILTER = {"accountType": {"$ne": "temp"}}
MISSING_VMT_COUNTERPART_FILTER = {"encUserId": {"$ne": None}, "vmtUserId": None}
ENC_STUDENT_ACCOUNT_TYPE = "S"


class EncUserOutcome(enum.Enum):
    ALREADY_ADDED = "already_added"
    LINKED_VMT_ACCOUNT = "linked_vmt_account"
    CREATED = "created"


@dataclass
class AddEncUsersResult:
    already_added: int = 0
    linked_vmt_accounts: int = 0
    created: int = 0
    dry_run: bool = False

    @property
    def total(self) -> int:
        return self.already_added + self.linked_vmt_accounts + self.created


@dataclass
class DuplicateUsersReport:
    usernames: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)


@dataclass
class CreateVmtCounterpartsResult:
    candidates: int = 0
    created: int = 0
    skipped: int = 0
    dry_run: bool = False


def is_non_empty_string(value: Any, trim: bool = False) -> bool:
    if not isinstance(value, str):
        return False
    return len(value.strip() if trim else value) > 0


def intersection(first: Iterable[T], second: Iterable[T]) -> list[T]:
    """Unique values of `first` also present in `second`, in first-seen order."""
    other = set(second)
    seen: set = set()
    result: list[T] = []
    for value in first:
        if value in other and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _drop_none(document: dict) -> dict:
    return {key: value for key, value in document.items() if value is not None}


def _run_parallel(
    func: Callable[[T], R], items: list[T], max_workers: int
) -> list[R]:
    if not items:
        return []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        # list() re-raises the first failure in submission order.
        return list(executor.map(func, items))


def build_sso_user(enc_user: dict, is_email_confirmed: bool) -> dict:
    """SSO user document created for an Encompass user with no SSO account."""
    now = _utcnow()
    first_name = enc_user.get("firstName")
    last_name = enc_user.get("lastName")
    email = enc_user.get("email")
    return _drop_none(
        {
            "username": enc_user.get("username"),
            "firstName": first_name if is_non_empty_string(first_name, True) else None,
            "lastName": last_name if is_non_empty_string(last_name, True) else None,
            "password": enc_user.get("password"),
            "encUserId": enc_user["_id"],
            "email": email if is_non_empty_string(email, True) else None,
            "createdAt": now,
            "updatedAt": now,
            "isTrashed": enc_user.get("isTrashed"),
            "confirmEmailExpires": enc_user.get("confirmEmailExpires"),
            "confirmEmailToken": enc_user.get("confirmEmailToken"),
            "resetPasswordToken": enc_user.get("resetPasswordToken"),
            "resetPasswordExpires": enc_user.get("resetPasswordExpires"),
            "isEmailConfirmed": is_email_confirmed,
            "googleId": enc_user.get("googleId"),
            "doForcePasswordChange": False,
            "confirmEmailDate": enc_user.get("confirmEmailDate"),
        }
    )


def build_vmt_user(sso_user: dict, enc_user: dict) -> dict:
    """Default VMT account mirroring an SSO user that came from Encompass."""
    now = _utcnow()
    account_type = (
        "participant"
        if enc_user.get("accountType") == ENC_STUDENT_ACCOUNT_TYPE
        else "facilitator"
    )
    return _drop_none(
        {
            "username": sso_user.get("username"),
            "email": sso_user.get("email"),
            "firstName": sso_user.get("firstName"),
            "lastName": sso_user.get("lastName"),
            "createdAt": now,
            "updatedAt": now,
            "isTrashed": sso_user.get("isTrashed"),
            "isEmailConfirmed": sso_user.get("isEmailConfirmed"),
            "doForcePasswordChange": sso_user.get("doForcePasswordChange"),
            "googleId": sso_user.get("googleId"),
            "ssoId": sso_user["_id"],
            "accountType": account_type,
            "courseTemplates": [],
            "courses": [],
            "rooms": [],
            "activities": [],
            "notifications": [],
            "bothRoles": False,
            "isAdmin": False,
            "seenTour": False,
            "confirmEmailDate": sso_user.get("confirmEmailDate"),
        }
    )


def add_enc_users(
    sso_users: UserStore,
    enc_users: UserStore,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    dry_run: bool = False,
) -> AddEncUsersResult:
    """
    Relate every Encompass user to an SSO account.

    Users already related are left alone. Users whose username matches an
    SSO account created earlier for their VMT account (no `encUserId` yet)
    are linked to it; every other user gets a new SSO account built from the
    Encompass record. Encompass users are updated with their `ssoId`.
    """

    def process(enc_user: dict) -> EncUserOutcome:
        enc_id = enc_user["_id"]
        if sso_users.find_one({"encUserId": enc_id}) is not None:
            return EncUserOutcome.ALREADY_ADDED

        vmt_alias = sso_users.find_one(
            {"username": enc_user.get("username"), "encUserId": None}
        )
        if vmt_alias is not None:
            if not dry_run:
                sso_users.update_one({"_id": vmt_alias["_id"]}, {"encUserId": enc_id})
                enc_users.update_one(
                    {"_id": enc_id},
                    {
                        "ssoId": vmt_alias["_id"],
                        "isEmailConfirmed": vmt_alias.get("isEmailConfirmed"),
                        "doForcePasswordChange": vmt_alias.get(
                            "doForcePasswordChange"
                        ),
                    },
                )
            return EncUserOutcome.LINKED_VMT_ACCOUNT

        confirmed = enc_user.get("isEmailConfirmed")
        is_email_confirmed = confirmed if isinstance(confirmed, bool) else False
        if not dry_run:
            sso_id = sso_users.insert_one(build_sso_user(enc_user, is_email_confirmed))
            enc_users.update_one(
                {"_id": enc_id},
                {"ssoId": sso_id, "isEmailConfirmed": is_email_confirmed},
            )
        return EncUserOutcome.CREATED

    users = enc_users.find()
    logger.info("Processing %d enc users", len(users))
    outcomes = Counter(_run_parallel(process, users, max_workers))

    result = AddEncUsersResult(
        already_added=outcomes[EncUserOutcome.ALREADY_ADDED],
        linked_vmt_accounts=outcomes[EncUserOutcome.LINKED_VMT_ACCOUNT],
        created=outcomes[EncUserOutcome.CREATED],
        dry_run=dry_run,
    )
    logger.info(
        "Did not create sso accounts for %d enc users that were already related "
        "to an sso account.",
        result.already_added,
    )
    logger.info(
        "Updated %d existing sso user accounts with vmt user ids",
        result.linked_vmt_accounts,
    )
    logger.info("Created %d sso users from existing enc accounts", result.created)
    return result


def _non_empty_emails(users: list[dict]) -> list[str]:
    return [
        user["email"]
        for user in users
        if isinstance(user.get("email"), str) and len(user["email"]) > 0
    ]


def find_duplicate_users(
    enc_users: UserStore, vmt_users: UserStore
) -> DuplicateUsersReport:
    """Report usernames and emails held by both a VMT and an Encompass account."""
    vmt = vmt_users.find(VMT_TEMP_ACCOUNT_FILTER)
    enc = enc_users.find()

    report = DuplicateUsersReport(
        usernames=intersection(
            [user.get("username") for user in enc],
            [user.get("username") for user in vmt],
        ),
        emails=intersection(_non_empty_emails(enc), _non_empty_emails(vmt)),
    )
    logger.info(
        "Usernames that are associated with both a VMT and Encompass account: %s",
        report.usernames,
    )
    logger.info(
        "Emails that are associated with both a VMT and Encompass account: %s",
        report.emails,
    )
    return report


def create_vmt_counterparts(
    sso_users: UserStore,
    enc_users: UserStore,
    vmt_users: UserStore,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    dry_run: bool = False,
) -> CreateVmtCounterpartsResult:
    """Create default VMT accounts for SSO users that only have Encompass ones."""
    candidates = sso_users.find(MISSING_VMT_COUNTERPART_FILTER)
    logger.info(
        "There are %d sso users with Encompass accounts but no VMT counterpart",
        len(candidates),
    )

    def process(sso_user: dict) -> Optional[dict]:
        enc_user = enc_users.find_one({"ssoId": sso_user["_id"]})
        if enc_user is None:
            logger.warning(
                "No enc user references sso user %s (encUserId=%s); skipping",
                sso_user["_id"],
                sso_user.get("encUserId"),
            )
            return None
        vmt_user = build_vmt_user(sso_user, enc_user)
        if dry_run:
            return vmt_user
        vmt_id = vmt_users.insert_one(vmt_user)
        sso_users.update_one({"_id": sso_user["_id"]}, {"vmtUserId": vmt_id})
        return vmt_user

    created = [doc for doc in _run_parallel(process, candidates, max_workers) if doc]

    result = CreateVmtCounterpartsResult(
        candidates=len(candidates),
        created=len(created),
        skipped=len(candidates) - len(created),
        dry_run=dry_run,
    )
    logger.info("Created %d new vmt accounts", result.created)
    if result.skipped:
        logger.warning("Skipped %d sso users without an enc account", result.skipped)
    return result
