"""Provide an API for user authentication against the directory."""

import logging

from . import passwords, records
from .accounts import AccountReader
from .exceptions import DirectoryError, LookupFailed
from .services.directory import DirectoryClient
from .settings import BIND, Settings

logger = logging.getLogger(__name__)

# Checked when there is no stored hash, so that unknown users take about as
# long to reject as wrong passwords.
_DUMMY_HASH = passwords.hash_password('', salt=b'\x00' * passwords.SALT_LENGTH)


class Authenticator(object):
    """Verifies usernames and passwords."""

    def __init__(self, directory: DirectoryClient, reader: AccountReader,
                 settings: Settings) -> None:
        self._directory = directory
        self._reader = reader
        self._settings = settings

    def verify(self, username: str, password: str) -> bool:
        """
        Check a username and password.

        Every failure, including an unknown user or an unreachable
        directory, is reported as ``False``.
        """
        if not username or not password:
            return False
        if not passwords.encodable(username) or \
                not passwords.encodable(password):
            logger.debug('Credentials are not valid UTF-8 text')
            return False
        if self._settings.authentication_method == BIND:
            return self._verify_by_bind(username, password)
        return self._verify_by_hash(username, password)

    def _verify_by_hash(self, username: str, password: str) -> bool:
        try:
            entry = self._reader.find(username, [records.PASSWORD_ATTRIBUTE])
            encoded = entry.first(records.PASSWORD_ATTRIBUTE)
        except (DirectoryError, LookupFailed) as e:
            logger.debug('No credential for %s: %s', username,
                         type(e).__name__)
            encoded = None
        if encoded is None:
            passwords.check_password(password, _DUMMY_HASH)
            return False
        return passwords.check_password(password, encoded)

    def _verify_by_bind(self, username: str, password: str) -> bool:
        dn = records.account_dn(self._settings, username)
        try:
            with self._directory.connect() as conn:
                conn.bind(dn, password)
        except DirectoryError as e:
            logger.debug('Bind as %s failed: %s', username, e.kind.value)
            return False
        return True
