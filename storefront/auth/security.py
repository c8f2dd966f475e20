"""
Password hashing helpers built on werkzeug.security.

Stored credentials are always salted hashes; plaintext passwords only exist
in request payloads and are never logged or returned.
"""

from werkzeug.security import check_password_hash, generate_password_hash


HASH_METHOD = 'pbkdf2:sha256'

# Verified against when the account does not exist so unknown and known
# emails take comparable time.
DUMMY_PASSWORD_HASH = generate_password_hash('storefront-dummy-password', method=HASH_METHOD)


def hash_password(password: str) -> str:
    """Return a salted hash for ``password``."""
    return generate_password_hash(password, method=HASH_METHOD)


def password_matched(stored_hash, candidate: str) -> bool:
    """
    Check a candidate password against a stored hash.

    Args:
        stored_hash: Hash as stored on the user document (may be missing)
        candidate: Plaintext password from the request

    Returns:
        True when the password is correct
    """
    if not stored_hash or not isinstance(candidate, str):
        check_password_hash(DUMMY_PASSWORD_HASH, candidate or '')
        return False
    return check_password_hash(stored_hash, candidate)


def burn_verification(candidate: str) -> None:
    """Run one hash verification whose result is discarded."""
    check_password_hash(DUMMY_PASSWORD_HASH, candidate or '')


__all__ = ['hash_password', 'password_matched', 'burn_verification', 'DUMMY_PASSWORD_HASH']
