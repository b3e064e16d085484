"""Testing helpers."""

import re
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .. import passwords
from ..exceptions import DirectoryError, DirectoryUnavailable, ErrorKind
from ..services.directory import BASE, LEVEL, SUBTREE, Attributes, Entry
from ..settings import Settings

BASE_DN = 'dc=example,dc=org'
ADMIN_DN = f'cn=root,{BASE_DN}'
ADMIN_PASSWORD = 'rootsecret'

SETTINGS = Settings(
    server='ldap://fake',
    base_dn=BASE_DN,
    admin_dn=ADMIN_DN,
    admin_password=ADMIN_PASSWORD,
    allocation_tries=10,
    allocation_delay=0
)

_ASSERTION = re.compile(r'\(([A-Za-z]+)=([^()]*)\)')


def _norm(dn: str) -> str:
    return ','.join(part.strip() for part in dn.lower().split(','))


def _parent(dn: str) -> str:
    return dn.split(',', 1)[1] if ',' in dn else ''


def _get(attributes: Attributes, name: str) -> Optional[str]:
    for key in attributes:
        if key.lower() == name.lower():
            return key
    return None


class FakeDirectory(object):
    """
    In-memory stand-in for :class:`.DirectoryClient`.

    Each primitive operation is atomic, like on a real server, but nothing
    groups two operations together. Filters may only be conjunctions of
    equality (or ``*`` presence) assertions.

    Failures and races are injected with :meth:`before`, which registers a
    callable to run ahead of an operation, and :meth:`fail`.
    """

    def __init__(self, admin_dn: str = ADMIN_DN,
                 admin_password: str = ADMIN_PASSWORD) -> None:
        self.entries: Dict[str, Entry] = {}
        self.calls: List[tuple] = []
        self.hooks: Dict[str, List[Callable]] = defaultdict(list)
        self.reachable = True
        self.open_connections = 0
        self._admin = (_norm(admin_dn), admin_password)
        self._lock = threading.Lock()

    def add_entry(self, dn: str, attributes: Attributes) -> None:
        """Put an entry in place without going through a connection."""
        self.entries[_norm(dn)] = Entry(dn, {k: list(v) for k, v
                                             in attributes.items()})

    def get(self, dn: str) -> Optional[Entry]:
        """Get an entry by DN."""
        return self.entries.get(_norm(dn))

    def before(self, operation: str, hook: Callable) -> None:
        """Run ``hook(dn, attributes)`` before each ``operation``."""
        self.hooks[operation].append(hook)

    def fail(self, operation: str, kind: ErrorKind, match: str = '',
             times: int = 1) -> None:
        """Make the next ``times`` calls on DNs containing ``match`` fail."""
        remaining = [times]

        def _hook(dn: str, attributes: Optional[Attributes]) -> None:
            if match.lower() in dn.lower() and remaining[0] > 0:
                remaining[0] -= 1
                raise DirectoryError(kind, f'injected {operation} failure')
        self.before(operation, _hook)

    def count(self, operation: str) -> int:
        """Number of times ``operation`` was called."""
        return len([c for c in self.calls if c[0] == operation])

    @contextmanager
    def connect(self) -> Iterator['FakeConnection']:
        if not self.reachable:
            raise DirectoryUnavailable('Could not connect to fake')
        with self._lock:
            self.open_connections += 1
        try:
            yield FakeConnection(self)
        finally:
            with self._lock:
                self.open_connections -= 1

    def _run(self, operation: str, dn: str,
             attributes: Optional[Attributes] = None) -> None:
        self.calls.append((operation, dn))
        for hook in list(self.hooks[operation]):
            hook(dn, attributes)


class FakeConnection(object):
    """A connection to a :class:`.FakeDirectory`."""

    def __init__(self, directory: FakeDirectory) -> None:
        self._dir = directory

    def bind(self, dn: str, secret: str) -> None:
        d = self._dir
        try:
            d._run('bind', dn)
        except DirectoryError as e:
            raise DirectoryUnavailable('injected', kind=e.kind) from e
        with d._lock:
            if (_norm(dn), secret) == d._admin:
                return
            entry = d.entries.get(_norm(dn))
            stored = entry.first('userPassword') if entry else None
        if secret and stored and passwords.check_password(secret, stored):
            return
        raise DirectoryUnavailable(f'Could not bind as {dn}',
                                   kind=ErrorKind.INVALID_CREDENTIALS)

    def search(self, base: str, scope: str, search_filter: str,
               attributes: List[str]) -> List[Entry]:
        d = self._dir
        d._run('search', base)
        assertions = _ASSERTION.findall(search_filter)
        base = _norm(base)
        with d._lock:
            if scope == BASE and base not in d.entries:
                raise DirectoryError(ErrorKind.NO_SUCH_OBJECT, 'no base')
            found = []
            for key, entry in d.entries.items():
                if scope == BASE and key != base:
                    continue
                if scope == LEVEL and _parent(key) != base:
                    continue
                if scope == SUBTREE and not (key == base
                                             or key.endswith(',' + base)):
                    continue
                if all(self._matches(entry, name, value)
                       for name, value in assertions):
                    wanted = [a.lower() for a in attributes]
                    found.append(Entry(entry.dn, {
                        name: list(values)
                        for name, values in entry.attributes.items()
                        if name.lower() in wanted
                    }))
        return found

    @staticmethod
    def _matches(entry: Entry, name: str, value: str) -> bool:
        values = entry.values(name)
        if value == '*':
            return bool(values)
        return value.lower() in [v.lower() for v in values]

    def add(self, dn: str, attributes: Attributes) -> None:
        d = self._dir
        d._run('add', dn, attributes)
        with d._lock:
            if _norm(dn) in d.entries:
                raise DirectoryError(ErrorKind.ALREADY_EXISTS, 'exists')
            d.entries[_norm(dn)] = Entry(dn, {k: list(v) for k, v
                                              in attributes.items()})

    def modify_remove(self, dn: str, attributes: Attributes) -> None:
        d = self._dir
        d._run('modify_remove', dn, attributes)
        with d._lock:
            entry = d.entries.get(_norm(dn))
            if entry is None:
                raise DirectoryError(ErrorKind.NO_SUCH_OBJECT, 'no entry')
            for name, values in attributes.items():
                key = _get(entry.attributes, name)
                present = entry.attributes[key] if key else []
                if any(value not in present for value in values):
                    raise DirectoryError(ErrorKind.NO_SUCH_ATTRIBUTE,
                                         'no such value')
            for name, values in attributes.items():
                key = _get(entry.attributes, name)
                entry.attributes[key] = [v for v in entry.attributes[key]
                                         if v not in values]

    def modify_add(self, dn: str, attributes: Attributes) -> None:
        d = self._dir
        d._run('modify_add', dn, attributes)
        with d._lock:
            entry = d.entries.get(_norm(dn))
            if entry is None:
                raise DirectoryError(ErrorKind.NO_SUCH_OBJECT, 'no entry')
            for name, values in attributes.items():
                key = _get(entry.attributes, name) or name
                present = entry.attributes.setdefault(key, [])
                if any(value in present for value in values):
                    raise DirectoryError(
                        ErrorKind.ATTRIBUTE_OR_VALUE_EXISTS, 'value exists'
                    )
                present.extend(values)

    def delete(self, dn: str) -> None:
        d = self._dir
        d._run('delete', dn)
        with d._lock:
            if _norm(dn) not in d.entries:
                raise DirectoryError(ErrorKind.NO_SUCH_OBJECT, 'no entry')
            del d.entries[_norm(dn)]


def temporary_directory(counter: Optional[int] = 1000,
                        settings: Settings = SETTINGS) -> FakeDirectory:
    """Provide an empty fake directory with its containers and uid counter."""
    directory = FakeDirectory(settings.admin_dn, settings.admin_password)
    directory.add_entry(settings.base_dn, {'objectClass': ['dcObject']})
    directory.add_entry(settings.users_dn,
                        {'objectClass': ['organizationalUnit']})
    directory.add_entry(settings.groups_dn,
                        {'objectClass': ['organizationalUnit']})
    counter_values = [] if counter is None else [str(counter)]
    directory.add_entry(settings.counter_dn, {
        'objectClass': ['uidNext'],
        'cn': ['uidNext'],
        'uidNumber': counter_values
    })
    return directory


def counter_of(directory: FakeDirectory,
               settings: Settings = SETTINGS) -> List[str]:
    """Current values of the uid counter."""
    entry = directory.get(settings.counter_dn)
    return entry.values('uidNumber') if entry else []
