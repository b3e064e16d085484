"""Runtime settings, built once from the application config."""

from typing import Any, Mapping, NamedTuple

HASH = 'hash'
BIND = 'bind'
AUTHENTICATION_METHODS = (HASH, BIND)


class Settings(NamedTuple):
    """Everything the directory components need to know at runtime."""

    server: str
    base_dn: str
    admin_dn: str
    admin_password: str
    timeout: float = 10.0

    users_rdn: str = 'ou=Users'
    groups_rdn: str = 'ou=Groups'
    counter_rdn: str = 'cn=uidNext'

    allocation_tries: int = 10
    allocation_delay: float = 0.1

    home_directory_base: str = '/home'
    login_shell: str = '/bin/bash'

    authentication_method: str = HASH

    @property
    def users_dn(self) -> str:
        """DN of the container holding account records."""
        return f'{self.users_rdn},{self.base_dn}'

    @property
    def groups_dn(self) -> str:
        """DN of the container holding group records."""
        return f'{self.groups_rdn},{self.base_dn}'

    @property
    def counter_dn(self) -> str:
        """DN of the record holding the next uid."""
        return f'{self.counter_rdn},{self.base_dn}'

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'Settings':
        """
        Build settings from a Flask-style config mapping.

        Raises
        ------
        :class:`ValueError`
            Raised if a numeric value cannot be parsed, or the authentication
            method is unknown.

        """
        method = config.get('AUTHENTICATION_METHOD', HASH).lower()
        if method not in AUTHENTICATION_METHODS:
            raise ValueError(f'Unknown AUTHENTICATION_METHOD: {method}')
        tries = int(config.get('UID_ALLOCATION_TRIES', 10))
        if tries < 1:
            raise ValueError('UID_ALLOCATION_TRIES must be at least 1')
        return cls(
            server=config['LDAP_SERVER'],
            base_dn=config['LDAP_BASE_DN'],
            admin_dn=config['LDAP_ADMIN_DN'],
            admin_password=config.get('LDAP_ADMIN_PASSWORD', ''),
            timeout=float(config.get('LDAP_TIMEOUT', 10)),
            allocation_tries=tries,
            allocation_delay=float(config.get('UID_ALLOCATION_DELAY', 0.1)),
            home_directory_base=config.get('HOME_DIRECTORY_BASE', '/home'),
            login_shell=config.get('LOGIN_SHELL', '/bin/bash'),
            authentication_method=method,
        )
