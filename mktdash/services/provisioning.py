"""Bulk account provisioning from the HR roster.

Each roster entry with an email that has no account yet becomes a login:
username is the email local part, role comes from position keywords and the
password is the shared default. Entries without an email, with an email that
already has an account (case-insensitive) or whose username is taken are
skipped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mktdash.config import DEFAULT_PROVISION_PASSWORD, ROLE_KEYWORDS
from mktdash.models.db.enums import UserRole
from mktdash.models.db.roster import RosterEntry
from mktdash.models.db.users import UserAccount
from mktdash.utils import get_logger, log_business_event
from mktdash.utils.security import generate_api_key, hash_password

logger = get_logger(__name__)

PROVISIONED_BY = "auto-script"


@dataclass
class ProvisionResult:
    created: int = 0
    skipped: int = 0
    role_stats: dict[str, int] = field(default_factory=lambda: {r.value: 0 for r in UserRole})
    created_usernames: list[str] = field(default_factory=list)


def infer_role(position: str | None) -> UserRole:
    """First matching keyword group wins; no match means a regular user."""
    text = (position or "").lower()
    for role, keywords in ROLE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return UserRole(role)
    return UserRole.USER


def find_roster_entry(session: Session, email: str | None) -> RosterEntry | None:
    """Roster entry linked to an account email, compared case-insensitively."""
    if not email:
        return None
    stmt = select(RosterEntry).where(func.lower(RosterEntry.email) == email.strip().lower())
    return session.execute(stmt).scalars().first()


def provision_accounts(
    session: Session,
    entries: Iterable[RosterEntry] | None = None,
    password: str | None = None,
    actor_id: int | None = None,
) -> ProvisionResult:
    if entries is None:
        entries = session.execute(select(RosterEntry).order_by(RosterEntry.id)).scalars().all()

    existing_emails = {
        (email or "").lower() for email in session.execute(select(UserAccount.email)).scalars()
    }
    existing_usernames = set(session.execute(select(UserAccount.username)).scalars())
    # One hash for the whole batch; every provisioned account shares the default
    password_hash = hash_password(password or DEFAULT_PROVISION_PASSWORD)

    result = ProvisionResult()
    for entry in entries:
        email = (entry.email or "").strip()
        if not email:
            logger.info("Provisioning skipped entry without email", roster_id=entry.id, name=entry.name)
            result.skipped += 1
            continue
        if email.lower() in existing_emails:
            logger.info("Provisioning skipped existing email", roster_id=entry.id, email=email)
            result.skipped += 1
            continue
        username = email.split("@")[0]
        if username in existing_usernames:
            logger.warning("Provisioning skipped taken username", roster_id=entry.id, username=username)
            result.skipped += 1
            continue

        role = infer_role(entry.position)
        session.add(UserAccount(
            username=username,
            password_hash=password_hash,
            email=email,
            display_name=entry.name or "",
            team=entry.team or "",
            branch=entry.branch or "",
            position=entry.position or "",
            department=entry.department or "",
            shift=entry.shift or "",
            role=role,
            roster_ref=str(entry.id),
            api_key=generate_api_key(),
            created_by=PROVISIONED_BY,
        ))
        existing_emails.add(email.lower())
        existing_usernames.add(username)
        result.created += 1
        result.role_stats[role.value] += 1
        result.created_usernames.append(username)

    session.commit()
    log_business_event(
        "accounts_provisioned",
        {"created": result.created, "skipped": result.skipped, "role_stats": result.role_stats},
        actor_id=actor_id,
    )
    return result


__all__ = [
    "PROVISIONED_BY",
    "ProvisionResult",
    "infer_role",
    "find_roster_entry",
    "provision_accounts",
]
