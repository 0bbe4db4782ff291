# src/sm_manager/core/access.py

"""
Access Gate and session-scoped authorization.

A caller submits one credential string:
1. the admin code -> Admin identity,
2. a member's zone number -> that member's identity,
3. anything else -> InvalidCredential (same message for every cause).

The resulting Session is an explicit object handed to whatever needs to
authorize something; there is no process-wide "current user". Logging out
means dropping the Session.

Authorization is applied at presentation time over data already read from the
store; the store itself does not know about identities.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import InvalidCredential, PermissionDenied
from .models import Person, PrivacyMode, ScheduleEntry, TaskRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    pass


@dataclass(frozen=True, slots=True)
class MemberIdentity:
    person: Person


Identity = AdminIdentity | MemberIdentity


@dataclass(frozen=True, slots=True)
class Session:
    identity: Identity

    @property
    def is_admin(self) -> bool:
        return isinstance(self.identity, AdminIdentity)

    @property
    def person_id(self) -> str | None:
        if isinstance(self.identity, MemberIdentity):
            return self.identity.person.id
        return None

    def describe(self) -> str:
        if isinstance(self.identity, MemberIdentity):
            p = self.identity.person
            return f"{p.name} ({p.group}, zone {p.zone_number})"
        return "admin"

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDenied("Admin access required.")

    def can_view_row(self, entry: ScheduleEntry, person_id: str) -> bool:
        if self.is_admin or entry.privacy_mode == PrivacyMode.PUBLIC:
            return True
        return person_id == self.person_id

    def can_edit_row(self, person_id: str) -> bool:
        # Privacy mode never widens edit rights: members edit only their own row.
        return self.is_admin or person_id == self.person_id

    def visible_rows(self, entry: ScheduleEntry) -> dict[str, TaskRecord]:
        return {pid: rec for pid, rec in entry.records.items() if self.can_view_row(entry, pid)}

    def editable_rows(self, entry: ScheduleEntry) -> set[str]:
        return {pid for pid in entry.records if self.can_edit_row(pid)}


class AccessGate:
    """Maps a submitted credential to a Session."""

    def __init__(self, admin_code: str) -> None:
        if not admin_code:
            raise ValueError("admin_code is required")
        self._admin_code = admin_code

    def authenticate(self, credential: str, members: Sequence[Person]) -> Session:
        value = (credential or "").strip()
        if not value:
            raise InvalidCredential()

        if hmac.compare_digest(value.encode("utf-8"), self._admin_code.encode("utf-8")):
            logger.info("Admin session opened.")
            return Session(AdminIdentity())

        for person in members:
            if person.zone_number and person.zone_number == value:
                logger.info("Member session opened id=%s", person.id)
                return Session(MemberIdentity(person))

        # Do not log the submitted value; it may be a mistyped admin code.
        logger.info("Login rejected.")
        raise InvalidCredential()
