"""Salted SHA-1 (``{SSHA}``) password hashes, as stored in ``userPassword``."""

import binascii
import hashlib
import hmac
import logging
import secrets
from base64 import b64encode, b64decode
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

PREFIX = '{SSHA}'
SALT_LENGTH = 4
DIGEST_LENGTH = hashlib.sha1().digest_size


def _hash_password_and_salt(password: str, salt: bytes) -> bytes:
    return hashlib.sha1(password.encode('utf-8') + salt).digest()


def encodable(text: str) -> bool:
    """Whether ``text`` can be encoded as UTF-8 (no lone surrogates)."""
    try:
        text.encode('utf-8')
    except UnicodeEncodeError:
        return False
    return True


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """
    Generate a salted hash of a password.

    Parameters
    ----------
    password : str
    salt : bytes
        If not provided, a random salt of :const:`SALT_LENGTH` bytes is used.

    Returns
    -------
    str
        ``{SSHA}`` followed by the base64 encoding of digest and salt.

    """
    if salt is None:
        salt = secrets.token_bytes(SALT_LENGTH)
    hashed = _hash_password_and_salt(password, salt)
    return PREFIX + b64encode(hashed + salt).decode('ascii')


def split_password(encoded: str) -> Tuple[bytes, bytes]:
    """
    Recover the digest and the salt from an encoded password.

    Raises
    ------
    :class:`ValueError`
        Raised if ``encoded`` is not a well-formed ``{SSHA}`` hash.

    """
    if not encoded[:len(PREFIX)].upper() == PREFIX:
        raise ValueError('Missing {SSHA} prefix')
    try:
        decoded = b64decode(encoded[len(PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError('Hash is not valid base64') from e
    if len(decoded) < DIGEST_LENGTH:
        raise ValueError('Hash is too short')
    return decoded[:DIGEST_LENGTH], decoded[DIGEST_LENGTH:]


def check_password(password: str, encoded: str) -> bool:
    """
    Check a password against an encoded hash.

    The comparison takes the same time no matter where the digests differ. A
    malformed hash, or a password that cannot be encoded as UTF-8, is
    reported as a wrong password.
    """
    if not isinstance(password, str) or not isinstance(encoded, str):
        return False
    try:
        digest, salt = split_password(encoded)
    except ValueError as e:
        logger.debug('Stored password hash is malformed: %s', e)
        return False
    try:
        candidate = _hash_password_and_salt(password, salt)
    except UnicodeEncodeError:
        logger.debug('Password is not valid UTF-8 text')
        return False
    return hmac.compare_digest(digest, candidate)
