"""Provide methods for working with user accounts."""

import logging
from typing import List

from . import domain, passwords, records
from .allocator import IdentifierAllocator
from .exceptions import AmbiguousResult, DirectoryError, ErrorKind, \
    NameUnavailable, NotFound, ProvisionFailed, ProvisionPartialFailure, \
    RollbackFailed
from .services.directory import SUBTREE, DirectoryClient, Entry
from .settings import Settings

logger = logging.getLogger(__name__)


class AccountReader(object):
    """Read-only access to account and group records."""

    def __init__(self, directory: DirectoryClient, settings: Settings) -> None:
        self._directory = directory
        self._settings = settings

    def list_users(self) -> List[domain.Account]:
        """
        Get all accounts under the Users container.

        Raises
        ------
        :class:`ValueError`
            Raised if an account record holds a malformed uid or gid.

        """
        with self._directory.connect() as conn:
            entries = conn.search(self._settings.users_dn, SUBTREE,
                                  records.ALL_ACCOUNTS_FILTER,
                                  records.ACCOUNT_ATTRIBUTES)
        return [records.account_from_entry(entry) for entry in entries]

    def find(self, username: str, attributes: List[str]) -> Entry:
        """
        Get the single account record for ``username``.

        Raises
        ------
        :class:`.NotFound`
            Raised if there is no such account.
        :class:`.AmbiguousResult`
            Raised if more than one record matches.

        """
        with self._directory.connect() as conn:
            entries = conn.search(self._settings.users_dn, SUBTREE,
                                  records.account_filter(username),
                                  attributes)
        if not entries:
            raise NotFound(f'No such user: {username}')
        if len(entries) > 1:
            raise AmbiguousResult(f'{len(entries)} accounts match {username}')
        return entries[0]

    def lookup(self, username: str) -> domain.Account:
        """
        Get the account for ``username``.

        Parameters
        ----------
        username : str

        Returns
        -------
        :class:`.domain.Account`

        Raises
        ------
        :class:`.NotFound`
        :class:`.AmbiguousResult`
        :class:`.DirectoryError`

        """
        return records.account_from_entry(
            self.find(username, records.ACCOUNT_ATTRIBUTES)
        )

    def username_exists(self, username: str) -> bool:
        """Determine whether an account named ``username`` already exists."""
        try:
            self.find(username, ['uid'])
        except NotFound:
            return False
        except AmbiguousResult:
            return True
        return True

    def group_exists(self, name: str) -> bool:
        """Determine whether a group called ``name`` already exists."""
        with self._directory.connect() as conn:
            entries = conn.search(self._settings.groups_dn, SUBTREE,
                                  records.group_filter(name), ['cn'])
        return len(entries) > 0


class AccountProvisioner(object):
    """
    Creates an account together with its personal group.

    The directory cannot write both records atomically, so the account is
    added first and removed again if the group cannot be added.
    """

    def __init__(self, directory: DirectoryClient,
                 allocator: IdentifierAllocator, reader: AccountReader,
                 settings: Settings) -> None:
        self._directory = directory
        self._allocator = allocator
        self._reader = reader
        self._settings = settings

    def check_available(self, username: str) -> None:
        """
        Make sure ``username`` is free as both an account and a group name.

        Raises
        ------
        :class:`.NameUnavailable`

        """
        if self._reader.username_exists(username):
            raise NameUnavailable('Username not available')
        if self._reader.group_exists(username):
            raise NameUnavailable('Group name not available')

    def create(self, profile: domain.UserProfile,
               password: str) -> domain.Account:
        """
        Create a new account and its group.

        Parameters
        ----------
        profile : :class:`.domain.UserProfile`
            Names for the new account.
        password : str
            Plaintext password; only its hash is stored.

        Returns
        -------
        :class:`.domain.Account`

        Raises
        ------
        :class:`.NameUnavailable`
            Raised if the username is taken, before anything is written.
        :class:`.AllocationExhausted`
            Raised if no uid could be claimed.
        :class:`.DirectoryUnavailable`
            Raised if the directory cannot be reached or the admin bind fails.
        :class:`.ProvisionFailed`
            Raised if the account record could not be added.
        :class:`.ProvisionPartialFailure`
            Raised if the group record could not be added. The account
            record has been removed again.
        :class:`.RollbackFailed`
            Raised if, in addition, the account record could not be removed.

        """
        logger.debug('Create user: %s', profile.username)
        self.check_available(profile.username)

        uid = self._allocator.allocate()
        settings = self._settings
        group = domain.Group(name=profile.username, gid_number=uid,
                             members=[profile.username])
        dn_user = records.account_dn(settings, profile.username)
        dn_group = records.group_dn(settings, group.name)
        attrs_user = records.account_attributes(
            settings, profile, uid, passwords.hash_password(password)
        )
        attrs_group = records.group_attributes(group)

        with self._directory.connect() as conn:
            conn.bind(settings.admin_dn, settings.admin_password)
            try:
                conn.add(dn_user, attrs_user)
            except DirectoryError as e:
                if e.kind is ErrorKind.ALREADY_EXISTS:
                    raise NameUnavailable('Username not available') from e
                logger.error('Could not add %s: %s', dn_user, e.kind.value)
                raise ProvisionFailed('Could not create user') from e

            try:
                conn.add(dn_group, attrs_group)
            except DirectoryError as e:
                logger.error('Could not add %s: %s', dn_group, e.kind.value)
                self._roll_back(conn, dn_user, e)
                raise ProvisionPartialFailure(
                    'Could not create group; user was removed', cause=e
                ) from e

        logger.info('Created user %s with uid %i', profile.username, uid)
        return domain.Account(
            username=profile.username,
            uid_number=uid,
            gid_number=uid,
            display_name=profile.display_name,
            surname=profile.surname,
            home_directory=attrs_user['homeDirectory'][0],
            login_shell=settings.login_shell
        )

    def _roll_back(self, conn, dn_user: str, cause: DirectoryError) -> None:
        try:
            conn.delete(dn_user)
        except DirectoryError as e:
            logger.error('Could not remove %s after failed group creation; '
                         'the record must be cleaned up by hand: %s',
                         dn_user, e.kind.value)
            raise RollbackFailed(
                'Could not create group, and could not remove user',
                cause=cause, compensation_error=e, orphan_dn=dn_user
            ) from cause
        logger.info('Removed %s after failed group creation', dn_user)
