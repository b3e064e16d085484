"""Allocation of unique uid/gid numbers from the shared counter record."""

import logging

from . import records
from .exceptions import AllocationExhausted, CounterUnreadable, \
    DirectoryError, RetriesExhausted
from .optimistic import compare_and_swap
from .services.directory import BASE, DirectoryClient, DirectoryConnection
from .settings import Settings

logger = logging.getLogger(__name__)


class IdentifierAllocator(object):
    """
    Hands out numbers from the ``uidNext`` counter.

    Two callers can never claim the same number: the claim removes the value
    that was read, and the directory refuses to remove a value that another
    caller has already removed. No lock is taken, so this also holds across
    processes. Numbers are never handed back; a failed account creation
    leaves a gap.
    """

    def __init__(self, directory: DirectoryClient, settings: Settings) -> None:
        self._directory = directory
        self._settings = settings

    def allocate(self) -> int:
        """
        Claim the next uid.

        Returns
        -------
        int

        Raises
        ------
        :class:`.DirectoryUnavailable`
            Raised if the directory cannot be reached or the admin bind fails.
        :class:`.AllocationExhausted`
            Raised if no number could be claimed within the configured number
            of tries.

        """
        settings = self._settings
        with self._directory.connect() as conn:
            conn.bind(settings.admin_dn, settings.admin_password)
            try:
                uid = compare_and_swap(
                    lambda: self._read(conn),
                    lambda current: self._increment(conn, current),
                    tries=settings.allocation_tries,
                    delay=settings.allocation_delay,
                    conflicts=(DirectoryError, CounterUnreadable)
                )
            except RetriesExhausted as e:
                logger.error('Unable to get next uid: %s', e.__cause__)
                raise AllocationExhausted('Unable to get next uid') from e
        logger.debug('Allocated uid %i', uid)
        return uid

    def _read(self, conn: DirectoryConnection) -> int:
        entries = conn.search(self._settings.counter_dn, BASE,
                              records.COUNTER_FILTER,
                              [records.COUNTER_ATTRIBUTE])
        return records.counter_value(entries)

    def _increment(self, conn: DirectoryConnection, current: int) -> None:
        dn = self._settings.counter_dn
        conn.modify_remove(dn, {records.COUNTER_ATTRIBUTE: [str(current)]})
        try:
            conn.modify_add(dn, {records.COUNTER_ATTRIBUTE: [str(current + 1)]})
        except DirectoryError as e:
            # The old value is gone and the new one was not written; until
            # someone restores it, every read of the counter will fail.
            logger.error('Removed uid %i from %s but could not store %i: %s',
                         current, dn, current + 1, e.kind.value)
            raise
