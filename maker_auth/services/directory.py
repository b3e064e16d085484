"""
Internal service API for the LDAP directory.

Provides the handful of primitive operations that the allocator, the
provisioner and the authenticator need: bind, search, add, modify and
delete. Every failure is raised as a :class:`.DirectoryError` carrying an
:class:`.ErrorKind`, so callers never have to look at server messages.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence

from ldap3 import Server, Connection, BASE, LEVEL, SUBTREE, NONE, SIMPLE, \
    MODIFY_ADD, MODIFY_DELETE
from ldap3.core import exceptions as ldap_exceptions
from ldap3.core import results
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn

from ..exceptions import DirectoryError, DirectoryUnavailable, ErrorKind

logger = logging.getLogger(__name__)

__all__ = ('BASE', 'LEVEL', 'SUBTREE', 'Attributes', 'Entry',
           'DirectoryClient', 'DirectoryConnection', 'escape_filter_chars',
           'escape_rdn')

Attributes = Dict[str, List[str]]

RESULT_KINDS = {
    results.RESULT_NO_SUCH_ATTRIBUTE: ErrorKind.NO_SUCH_ATTRIBUTE,
    results.RESULT_NO_SUCH_OBJECT: ErrorKind.NO_SUCH_OBJECT,
    results.RESULT_INVALID_CREDENTIALS: ErrorKind.INVALID_CREDENTIALS,
    results.RESULT_INAPPROPRIATE_AUTHENTICATION:
        ErrorKind.INVALID_CREDENTIALS,
    results.RESULT_INSUFFICIENT_ACCESS_RIGHTS: ErrorKind.INSUFFICIENT_ACCESS,
    results.RESULT_ENTRY_ALREADY_EXISTS: ErrorKind.ALREADY_EXISTS,
    results.RESULT_ATTRIBUTE_OR_VALUE_EXISTS:
        ErrorKind.ATTRIBUTE_OR_VALUE_EXISTS,
    results.RESULT_CONSTRAINT_VIOLATION: ErrorKind.CONSTRAINT_VIOLATION,
    results.RESULT_BUSY: ErrorKind.UNAVAILABLE,
    results.RESULT_UNAVAILABLE: ErrorKind.UNAVAILABLE,
    results.RESULT_UNWILLING_TO_PERFORM: ErrorKind.UNAVAILABLE,
    results.RESULT_TIME_LIMIT_EXCEEDED: ErrorKind.TIMEOUT,
}


class Entry(NamedTuple):
    """A search result: a DN and its multi-valued attributes."""

    dn: str
    attributes: Attributes

    def values(self, name: str) -> List[str]:
        """All values of attribute ``name``; names are case-insensitive."""
        for key, values in self.attributes.items():
            if key.lower() == name.lower():
                return list(values)
        return []

    def first(self, name: str) -> Optional[str]:
        """The first value of attribute ``name``, if any."""
        values = self.values(name)
        return values[0] if values else None


def kind_for_result(result: Optional[dict]) -> ErrorKind:
    """Get the :class:`.ErrorKind` for an ldap3 result dict."""
    if not result:
        return ErrorKind.OTHER
    return RESULT_KINDS.get(result.get('result'), ErrorKind.OTHER)


def kind_for_exception(exc: Exception) -> ErrorKind:
    """Get the :class:`.ErrorKind` for an exception raised by ldap3."""
    if isinstance(exc, ldap_exceptions.LDAPResponseTimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ldap_exceptions.LDAPCommunicationError,
                        ldap_exceptions.LDAPSocketOpenError)):
        return ErrorKind.UNAVAILABLE
    if isinstance(exc, (ldap_exceptions.LDAPBindError,
                        ldap_exceptions.LDAPPasswordIsMandatoryError)):
        return ErrorKind.INVALID_CREDENTIALS
    return ErrorKind.OTHER


def _decode(raw_attributes: Dict[str, Sequence[bytes]]) -> Attributes:
    return {
        name: [value.decode('utf-8') if isinstance(value, bytes) else value
               for value in values]
        for name, values in raw_attributes.items()
    }


class DirectoryConnection(object):
    """An open connection to the directory, used by a single operation."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def _check(self, operation: str, succeeded: bool) -> None:
        if succeeded:
            return
        result = self._connection.result
        kind = kind_for_result(result)
        logger.debug('%s failed: %s', operation, kind.value)
        raise DirectoryError(kind, f'{operation} failed')

    def _call(self, operation: str, method, *args, **kwargs) -> bool:
        try:
            return method(*args, **kwargs)
        except ldap_exceptions.LDAPException as e:
            kind = kind_for_exception(e)
            logger.debug('%s raised %s: %s', operation, type(e).__name__, e)
            raise DirectoryError(kind, f'{operation} failed') from e

    def bind(self, dn: str, secret: str) -> None:
        """
        Authenticate this connection as ``dn``.

        Raises
        ------
        :class:`.DirectoryUnavailable`
            Raised if the bind is rejected or the server cannot be reached.

        """
        self._connection.user = dn
        self._connection.password = secret
        self._connection.authentication = SIMPLE
        try:
            self._check('bind', self._call('bind', self._connection.bind))
        except DirectoryError as e:
            raise DirectoryUnavailable(f'Could not bind as {dn}',
                                       kind=e.kind) from e

    def search(self, base: str, scope: str, search_filter: str,
               attributes: Sequence[str]) -> List[Entry]:
        """
        Search the directory.

        Parameters
        ----------
        base : str
            DN at which to start the search.
        scope : str
            One of :const:`BASE`, :const:`LEVEL` or :const:`SUBTREE`.
        search_filter : str
            An RFC 4515 filter. Values must already be escaped.
        attributes : list
            Names of the attributes to return.

        Returns
        -------
        list
            :class:`.Entry` instances; empty if nothing matched.

        """
        self._call('search', self._connection.search, search_base=base,
                   search_filter=search_filter, search_scope=scope,
                   attributes=list(attributes))
        # search() reports False for an empty result, so go by the code.
        result = self._connection.result or {}
        if result.get('result') != results.RESULT_SUCCESS:
            self._check('search', False)
        return [
            Entry(dn=item['dn'],
                  attributes=_decode(item.get('raw_attributes', {})))
            for item in self._connection.response or []
            if item.get('type') == 'searchResEntry'
        ]

    def add(self, dn: str, attributes: Attributes) -> None:
        """Add an entry."""
        self._check('add', self._call('add', self._connection.add, dn,
                                      attributes=attributes))

    def modify_remove(self, dn: str, attributes: Attributes) -> None:
        """Remove attribute values; fails if any value is not present."""
        changes = {name: [(MODIFY_DELETE, list(values))]
                   for name, values in attributes.items()}
        self._check('modify', self._call('modify', self._connection.modify,
                                         dn, changes))

    def modify_add(self, dn: str, attributes: Attributes) -> None:
        """Add attribute values to an existing entry."""
        changes = {name: [(MODIFY_ADD, list(values))]
                   for name, values in attributes.items()}
        self._check('modify', self._call('modify', self._connection.modify,
                                         dn, changes))

    def delete(self, dn: str) -> None:
        """Delete an entry."""
        self._check('delete', self._call('delete', self._connection.delete,
                                         dn))

    def close(self) -> None:
        """Unbind and release the socket."""
        try:
            self._connection.unbind()
        except ldap_exceptions.LDAPException as e:
            logger.debug('Error while closing connection: %s', e)


class DirectoryClient(object):
    """
    Opens connections to an LDAP server.

    The server URL is parsed once, here; every :meth:`connect` creates a
    fresh connection, so a single instance can be shared between requests.

    Raises
    ------
    :class:`ldap3.core.exceptions.LDAPException`
        Raised if ``server`` is not a valid LDAP URL (for example
        :class:`LDAPInvalidPortError`). This is a configuration error, and is
        not reported as the directory being unavailable.
    """

    def __init__(self, server: str, timeout: float = 10) -> None:
        self._url = server
        self._timeout = timeout
        self.server = Server(server, get_info=NONE, connect_timeout=timeout)

    @contextmanager
    def connect(self) -> Iterator[DirectoryConnection]:
        """
        Open a connection that is closed when the block exits.

        Raises
        ------
        :class:`.DirectoryUnavailable`
            Raised if the server cannot be reached.

        """
        logger.debug('New LDAP connection to %s', self._url)
        try:
            connection = Connection(self.server,
                                    receive_timeout=self._timeout,
                                    raise_exceptions=False)
            connection.open()
        except ldap_exceptions.LDAPException as e:
            logger.error('Could not connect to %s: %s', self._url, e)
            raise DirectoryUnavailable(f'Could not connect to '
                                       f'{self._url}') from e
        wrapped = DirectoryConnection(connection)
        try:
            yield wrapped
        finally:
            wrapped.close()
