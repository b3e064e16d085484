"""
The operations offered to the web layer, and their Flask integration.

:class:`IdentityGateway` wires the directory components together from a
single :class:`.Settings`. The factory builds one instance at startup with
:func:`init_app`; request handlers get it back with :func:`current_gateway`.
"""

import logging
import re
from typing import List, Optional

from flask import Flask, current_app

from . import domain, passwords
from .accounts import AccountProvisioner, AccountReader
from .allocator import IdentifierAllocator
from .authenticate import Authenticator
from .exceptions import ValidationError
from .services.directory import DirectoryClient
from .settings import Settings

logger = logging.getLogger(__name__)

EXTENSION = 'maker_auth'

USERNAME_PATTERN = re.compile(r'^[a-z_][a-z0-9_-]{0,31}\Z')
"""POSIX-style login names: lowercase, at most 32 characters."""


class IdentityGateway(object):
    """List, look up, create and authenticate accounts."""

    def __init__(self, settings: Settings,
                 directory: Optional[DirectoryClient] = None) -> None:
        if directory is None:
            directory = DirectoryClient(settings.server, settings.timeout)
        self.settings = settings
        self.reader = AccountReader(directory, settings)
        self.allocator = IdentifierAllocator(directory, settings)
        self.provisioner = AccountProvisioner(directory, self.allocator,
                                              self.reader, settings)
        self.authenticator = Authenticator(directory, self.reader, settings)

    def list_users(self) -> List[domain.Account]:
        """Get all accounts."""
        return self.reader.list_users()

    def get_user(self, username: str) -> domain.Account:
        """
        Get a single account.

        Raises
        ------
        :class:`.NotFound`
            Raised if there is no such account.
        :class:`.AmbiguousResult`
            Raised if several records claim the username.

        """
        return self.reader.lookup(username)

    def create_user(self, first_name: str, surname: str, username: str,
                    password: str) -> domain.Account:
        """
        Create an account and its group.

        Raises
        ------
        :class:`.ValidationError`
            Raised if a field is empty or cannot be encoded as UTF-8, or the
            username is not a valid login name. Nothing is read or written
            in that case.
        :class:`.ProvisionError`
            See :meth:`.AccountProvisioner.create`.

        """
        fields = {'firstName': first_name, 'surname': surname,
                  'username': username, 'password': password}
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ValidationError(f'Missing fields: {", ".join(missing)}')
        invalid = [name for name, value in fields.items()
                   if not passwords.encodable(value)]
        if invalid:
            raise ValidationError(f'Not valid text: {", ".join(invalid)}')
        if not USERNAME_PATTERN.match(username):
            raise ValidationError('Username is not a valid login name')
        profile = domain.UserProfile(first_name=first_name, surname=surname,
                                     username=username)
        return self.provisioner.create(profile, password)

    def authenticate(self, username: str, password: str) -> bool:
        """Check a username and password."""
        return self.authenticator.verify(username, password)


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach a gateway to the application."""
    app.config.setdefault('LDAP_TIMEOUT', '10')
    app.config.setdefault('UID_ALLOCATION_TRIES', '10')
    app.config.setdefault('UID_ALLOCATION_DELAY', '0.1')
    app.config.setdefault('AUTHENTICATION_METHOD', 'hash')
    settings = Settings.from_config(app.config)
    logger.debug('Directory at %s, base %s', settings.server, settings.base_dn)
    app.extensions[EXTENSION] = IdentityGateway(settings)


def current_gateway() -> IdentityGateway:
    """Get the :class:`.IdentityGateway` of the current application."""
    gateway: IdentityGateway = current_app.extensions[EXTENSION]
    return gateway
