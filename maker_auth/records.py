"""
Layout of account, group and counter records in the directory.

Accounts live under ``ou=Users`` as ``posixAccount``/``shadowAccount``
entries named by ``uid``; each has a ``posixGroup`` of the same name and
number under ``ou=Groups``. The next free uid is kept in the ``uidNumber``
attribute of a single ``uidNext`` record directly under the base DN.
"""

from datetime import datetime
from typing import Optional

from pytz import UTC

from . import domain
from .exceptions import CounterUnreadable
from .services.directory import Attributes, Entry, escape_filter_chars, \
    escape_rdn
from .settings import Settings

ACCOUNT_OBJECT_CLASSES = ['top', 'person', 'posixAccount', 'shadowAccount']
GROUP_OBJECT_CLASSES = ['top', 'posixGroup']

COUNTER_FILTER = '(objectClass=uidNext)'
COUNTER_ATTRIBUTE = 'uidNumber'

ACCOUNT_ATTRIBUTES = ['uid', 'sn', 'uidNumber', 'gidNumber', 'gecos',
                      'homeDirectory', 'loginShell']
PASSWORD_ATTRIBUTE = 'userPassword'

ALL_ACCOUNTS_FILTER = '(objectClass=posixAccount)'

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def days_since_epoch(t: Optional[datetime] = None) -> int:
    """Get the day number used by ``shadowLastChange``."""
    if t is None:
        t = datetime.now(tz=UTC)
    return (t - EPOCH).days


def account_dn(settings: Settings, username: str) -> str:
    """DN of the account record for ``username``."""
    return f'uid={escape_rdn(username)},{settings.users_dn}'


def group_dn(settings: Settings, name: str) -> str:
    """DN of the group record called ``name``."""
    return f'cn={escape_rdn(name)},{settings.groups_dn}'


def account_filter(username: str) -> str:
    """Search filter matching the account for ``username``."""
    return f'(&{ALL_ACCOUNTS_FILTER}(uid={escape_filter_chars(username)}))'


def group_filter(name: str) -> str:
    """Search filter matching the group called ``name``."""
    return f'(&(objectClass=posixGroup)(cn={escape_filter_chars(name)}))'


def account_attributes(settings: Settings, profile: domain.UserProfile,
                       uid: int, password_hash: str,
                       today: Optional[int] = None) -> Attributes:
    """Build the attributes of a new account record."""
    number = str(uid)
    if today is None:
        today = days_since_epoch()
    return {
        'objectClass': list(ACCOUNT_OBJECT_CLASSES),
        'cn': [profile.username],
        'sn': [profile.surname],
        'uid': [profile.username],
        PASSWORD_ATTRIBUTE: [password_hash],
        'uidNumber': [number],
        'gidNumber': [number],
        'homeDirectory': [f'{settings.home_directory_base.rstrip("/")}'
                          f'/{profile.username}'],
        'gecos': [profile.display_name],
        'loginShell': [settings.login_shell],
        'shadowLastChange': [str(today)],
        'shadowMin': ['0'],
        'shadowMax': ['999999'],
        'shadowWarning': ['7'],
        'shadowInactive': ['-1'],
        'shadowExpire': ['-1'],
        'shadowFlag': ['0'],
    }


def group_attributes(group: domain.Group) -> Attributes:
    """Build the attributes of a new group record."""
    return {
        'objectClass': list(GROUP_OBJECT_CLASSES),
        'cn': [group.name],
        'gidNumber': [str(group.gid_number)],
        'memberUid': list(group.members),
    }


def account_from_entry(entry: Entry) -> domain.Account:
    """
    Load an :class:`.domain.Account` from a search result.

    Raises
    ------
    :class:`ValueError`
        Raised if the username is missing or a number cannot be parsed.

    """
    username = entry.first('uid')
    if not username:
        raise ValueError(f'Entry {entry.dn} has no uid')
    return domain.Account(
        username=username,
        uid_number=int(entry.first('uidNumber') or ''),
        gid_number=int(entry.first('gidNumber') or ''),
        display_name=entry.first('gecos') or '',
        surname=entry.first('sn') or '',
        home_directory=entry.first('homeDirectory') or '',
        login_shell=entry.first('loginShell') or ''
    )


def counter_value(entries: list) -> int:
    """
    Read the next uid from the result of a counter search.

    Raises
    ------
    :class:`.CounterUnreadable`
        Raised unless there is exactly one counter holding exactly one
        numeric value.

    """
    if len(entries) != 1:
        raise CounterUnreadable(f'Expected one counter, found {len(entries)}')
    values = entries[0].values(COUNTER_ATTRIBUTE)
    if len(values) != 1:
        raise CounterUnreadable(f'Counter holds {len(values)} values')
    try:
        value = int(values[0])
    except ValueError as e:
        raise CounterUnreadable('Counter value is not a number') from e
    if value < 0:
        raise CounterUnreadable('Counter value is negative')
    return value
