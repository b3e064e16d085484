"""Defines account concepts for the identity gateway."""

from typing import Any, Dict, List, NamedTuple


class UserProfile(NamedTuple):
    """Data supplied by a client requesting a new account."""

    first_name: str
    surname: str
    username: str

    @property
    def display_name(self) -> str:
        """Full name, as stored in ``gecos``."""
        return f'{self.first_name} {self.surname}'


class Account(NamedTuple):
    """A POSIX account in the directory."""

    username: str
    uid_number: int
    gid_number: int

    display_name: str = ''
    """Taken from ``gecos``."""

    surname: str = ''
    home_directory: str = ''
    login_shell: str = ''

    def summary(self) -> Dict[str, Any]:
        """Fields returned when listing accounts."""
        return {'username': self.username, 'uid': self.uid_number,
                'gid': self.gid_number}

    def details(self) -> Dict[str, Any]:
        """Fields returned when a single account is requested."""
        data = self.summary()
        data['displayName'] = self.display_name
        return data


class Group(NamedTuple):
    """The personal group paired with each :class:`.Account`."""

    name: str
    gid_number: int
    members: List[str]
