"""
Login attempt persistence.

The lockout guard never performs read-modify-write on attempt counters. Every
transition is a single conditional ``find_one_and_update`` so concurrent login
requests for the same account are serialized by the database.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId

from storefront.data.mongodb import MongoDBManager, ResourceType


logger = structlog.get_logger(__name__)


class LoginAttemptRepository:
    """Atomic attempt-counter transitions on user documents."""

    COUNT_FIELD = 'login_attempt'
    TIME_FIELD = 'last_attempt_at'

    def __init__(self, manager: MongoDBManager):
        self._manager = manager

    def find_account(self, email: str) -> Optional[Dict[str, Any]]:
        """Load the user document for ``email``, or None."""
        return self._manager.fetch_by_field(ResourceType.USERS, 'email', email)

    def claim_attempt(self, account_id: ObjectId, max_attempts: int, now: datetime) -> Optional[Dict[str, Any]]:
        """
        Reserve one login attempt if the account is still below the limit.

        Args:
            account_id: User document identifier
            max_attempts: Attempt limit; the claim fails once the stored count reaches it
            now: Timestamp recorded as the latest attempt

        Returns:
            Updated document, or None when the limit was already reached
        """
        match = {'_id': account_id, self.COUNT_FIELD: {'$not': {'$gte': max_attempts}}}
        update = {
            '$inc': {self.COUNT_FIELD: 1},
            '$set': {self.TIME_FIELD: now},
        }
        return self._manager.find_one_and_update(ResourceType.USERS, match, update)

    def reset_missing_counter(self, account_id: ObjectId) -> None:
        """Store 0 in place of a null or absent counter so ``$inc`` can apply to it."""
        match = {'_id': account_id, self.COUNT_FIELD: None}
        self._manager.find_one_and_update(ResourceType.USERS, match, {'$set': {self.COUNT_FIELD: 0}})

    def release_expired(self, account_id: ObjectId, observed_count: Any, observed_time: Any) -> bool:
        """
        Reset an expired lock, only if nobody changed the account since it was read.

        Args:
            account_id: User document identifier
            observed_count: Counter value as read from storage
            observed_time: Last attempt value exactly as read from storage

        Returns:
            True when this caller performed the reset
        """
        match = {
            '_id': account_id,
            self.COUNT_FIELD: observed_count,
            self.TIME_FIELD: observed_time,
        }
        update = {'$set': {self.COUNT_FIELD: 0}}
        released = self._manager.find_one_and_update(ResourceType.USERS, match, update) is not None
        logger.debug("Expired lock release", account_id=str(account_id), released=released)
        return released

    def record_success(self, account_id: ObjectId, now: datetime) -> Optional[Dict[str, Any]]:
        """Reset the counter after a verified login."""
        update = {'$set': {self.COUNT_FIELD: 0, self.TIME_FIELD: now}}
        return self._manager.find_one_and_update(ResourceType.USERS, {'_id': account_id}, update)

    def load(self, account_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self._manager.fetch_one(ResourceType.USERS, account_id)


__all__ = ['LoginAttemptRepository']
