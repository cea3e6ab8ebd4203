"""User records keyed by auth id, mirrored into profiles keyed by email.

Firestore Structure:
    users/{user_id}          -> {email, displayName, lastUpdated}
    userProfiles/{email}     -> {email, displayName, photoURL, lastUpdated}

Email is the join key between users, invitations and shared records, so
every sharing operation starts with ``find_by_email``.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..documents import USER_PROFILES, USERS, DocumentStore
from ..errors import ValidationError
from ..models import UserIdentity, UserRecord, normalize_email, utc_now

logger = logging.getLogger(__name__)


class UserDirectory:
    """Lookups and sign-in upserts over the ``users`` collections."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def upsert_profile(self, identity: UserIdentity, *, photo_url: Optional[str] = None) -> UserRecord:
        """Create or refresh the user's records on sign-in.

        Both writes are merges so fields written elsewhere survive.
        """
        email = normalize_email(identity.email)
        if not email:
            raise ValidationError("Cannot register a user without an email.")

        now = utc_now().isoformat()
        self.store.set(
            USER_PROFILES,
            email,
            {
                "email": email,
                "displayName": identity.display_name,
                "photoURL": photo_url,
                "lastUpdated": now,
            },
            merge=True,
        )
        self.store.set(
            USERS,
            identity.id,
            {
                "email": email,
                "displayName": identity.display_name,
                "lastUpdated": now,
            },
            merge=True,
        )
        logger.info("[Users] Profile updated for %s", email)
        return UserRecord(
            id=identity.id,
            email=email,
            display_name=identity.display_name,
        )

    def get(self, user_id: str) -> Optional[UserRecord]:
        data = self.store.get(USERS, user_id)
        if data is None:
            return None
        return UserRecord.from_dict(user_id, data)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Return the first user record with this email, or None."""
        email = normalize_email(email)
        if not email:
            return None
        matches = self.store.query(USERS, "email", email, limit=1)
        if not matches:
            return None
        return UserRecord.from_dict(matches[0].id, matches[0].data)

    def user_exists(self, email: str) -> bool:
        """Check whether an email belongs to a registered user.

        Profiles are checked first; a user record without a profile gets its
        profile backfilled.
        """
        email = normalize_email(email)
        if not email:
            return False

        if self.store.get(USER_PROFILES, email) is not None:
            return True

        record = self.find_by_email(email)
        if record is None:
            return False

        self.store.set(
            USER_PROFILES,
            email,
            {
                "email": record.email,
                "displayName": record.display_name or "",
                "lastUpdated": utc_now().isoformat(),
            },
            merge=True,
        )
        return True

    def list_users(self) -> List[UserRecord]:
        return [UserRecord.from_dict(doc.id, doc.data) for doc in self.store.stream(USERS)]
