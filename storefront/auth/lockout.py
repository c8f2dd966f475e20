"""
Login Lockout Guard

Per-account brute force protection backed by counters stored on the user document.
An account moves through three states:

- ``OPEN``: fewer than ``max_attempts`` recorded failures
- ``LOCKED``: limit reached and the lockout window since the last attempt is still running
- ``EXPIRED_LOCK``: limit reached but the window has elapsed

Counters are never updated with read-modify-write. An attempt slot is claimed with a
conditional ``$inc`` before the password is verified, so concurrent requests cannot
verify more than ``max_attempts`` passwords inside one window, and an expired lock is
released only if the counter still holds the exact values that were observed.
"""

import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from storefront.auth.security import burn_verification, password_matched
from storefront.business.exceptions import InvalidCredentialsError, LockedOutError
from storefront.data.repositories import LoginAttemptRepository
from storefront.monitoring.logging import log_security_event
from storefront.monitoring.metrics import LOGIN_ATTEMPTS


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Drivers without tz_aware hand back naive UTC datetimes
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LockoutStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    EXPIRED_LOCK = "expired_lock"


class LockoutPolicy(BaseModel):
    """Attempt threshold and lockout window."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=5, ge=1)
    window_minutes: int = Field(default=30, ge=1)

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)


class LockoutState(BaseModel):
    """Snapshot of the persisted attempt counter of one account."""

    model_config = ConfigDict(frozen=True)

    attempt_count: int = 0
    last_attempt_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> 'LockoutState':
        return cls(
            attempt_count=document.get(LoginAttemptRepository.COUNT_FIELD) or 0,
            last_attempt_at=_as_utc(document.get(LoginAttemptRepository.TIME_FIELD)),
        )

    def lockout_end(self, policy: LockoutPolicy) -> Optional[datetime]:
        if self.last_attempt_at is None:
            return None
        return self.last_attempt_at + policy.window

    def status(self, policy: LockoutPolicy, now: datetime) -> LockoutStatus:
        """
        Classify the account at ``now``.

        A counter at the limit without a recorded attempt time is treated as an
        expired lock because no window can be computed for it.
        """
        if self.attempt_count < policy.max_attempts:
            return LockoutStatus.OPEN
        end = self.lockout_end(policy)
        if end is not None and now < end:
            return LockoutStatus.LOCKED
        return LockoutStatus.EXPIRED_LOCK

    def remaining_minutes(self, policy: LockoutPolicy, now: datetime) -> int:
        """Whole minutes left on the lock, rounded up; 0 when not locked."""
        end = self.lockout_end(policy)
        if end is None or now >= end:
            return 0
        return math.ceil((end - now).total_seconds() / 60)


class LoginLockoutGuard:
    """
    Credential check wrapped in the per-account lockout state machine.

    Args:
        repository: Atomic counter operations on user documents
        policy: Threshold and window, defaults to 5 attempts / 30 minutes
        clock: Returns the current aware UTC time; injectable for tests
    """

    def __init__(self, repository: LoginAttemptRepository, policy: Optional[LockoutPolicy] = None,
                 clock: Optional[Clock] = None):
        self.repository = repository
        self.policy = policy or LockoutPolicy()
        self.clock = clock or utc_now

    def attempt_login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Check ``password`` for the account registered under ``email``.

        Args:
            email: Login email
            password: Supplied plaintext password

        Returns:
            The user document after a successful login

        Raises:
            LockedOutError: The account is locked; the password was not checked
            InvalidCredentialsError: Unknown email or wrong password
        """
        account = self.repository.find_account(email)
        if account is None:
            burn_verification(password)
            self._reject(email, reason='unknown_account')

        now = self.clock()
        account_id = account['_id']
        state = LockoutState.from_document(account)
        status = state.status(self.policy, now)

        if status is LockoutStatus.LOCKED:
            self._locked(email, state.remaining_minutes(self.policy, now))

        if status is LockoutStatus.EXPIRED_LOCK:
            self.repository.release_expired(
                account_id,
                account.get(LoginAttemptRepository.COUNT_FIELD),
                account.get(LoginAttemptRepository.TIME_FIELD),
            )

        if account.get(LoginAttemptRepository.COUNT_FIELD) is None:
            self.repository.reset_missing_counter(account_id)

        claimed = self.repository.claim_attempt(account_id, self.policy.max_attempts, now)
        if claimed is None:
            self._claim_refused(email, account_id, now)

        if not password_matched(claimed.get('password'), password):
            logger.debug("Password mismatch", attempt_count=claimed.get(LoginAttemptRepository.COUNT_FIELD))
            self._reject(email, reason='wrong_password')

        updated = self.repository.record_success(account_id, now) or claimed
        LOGIN_ATTEMPTS.labels(outcome='success').inc()
        log_security_event('auth.login_succeeded', 'info', email=email)
        return updated

    def _claim_refused(self, email: str, account_id: Any, now: datetime) -> None:
        # Another request filled the last slot between our read and our claim
        current = self.repository.load(account_id)
        if current is None:
            self._reject(email, reason='account_removed')
        state = LockoutState.from_document(current)
        remaining = state.remaining_minutes(self.policy, now) or self.policy.window_minutes
        self._locked(email, remaining)

    def _reject(self, email: str, reason: str) -> None:
        LOGIN_ATTEMPTS.labels(outcome='invalid_credentials').inc()
        log_security_event('auth.login_failed', 'warning', email=email, reason=reason)
        raise InvalidCredentialsError()

    def _locked(self, email: str, remaining_minutes: int) -> None:
        LOGIN_ATTEMPTS.labels(outcome='locked_out').inc()
        log_security_event('auth.login_locked', 'warning', email=email, remaining_minutes=remaining_minutes)
        raise LockedOutError(remaining_minutes)


__all__ = [
    'LockoutStatus',
    'LockoutPolicy',
    'LockoutState',
    'LoginLockoutGuard',
    'utc_now',
]
