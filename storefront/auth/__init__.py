"""
Authentication package: password hashing and the login lockout guard.
"""

from storefront.auth.security import hash_password, password_matched
from storefront.auth.lockout import (
    LockoutPolicy,
    LockoutState,
    LockoutStatus,
    LoginLockoutGuard,
)

__all__ = [
    'hash_password',
    'password_matched',
    'LockoutPolicy',
    'LockoutState',
    'LockoutStatus',
    'LoginLockoutGuard',
]
