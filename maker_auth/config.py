"""Flask configuration."""

import os

#################### Directory ####################
LDAP_SERVER = os.environ.get('LDAP_SERVER', 'ldap://ldap-server.local:389')
"""URI of the LDAP server that holds the accounts, without a trailing slash."""

LDAP_BASE_DN = os.environ.get('LDAP_BASE_DN', 'dc=techne-dev,dc=se')
"""Base under which the Users and Groups containers and the uid counter live."""

LDAP_ADMIN_DN = os.environ.get('LDAP_ADMIN_DN', 'cn=root,dc=techne-dev,dc=se')
LDAP_ADMIN_PASSWORD = os.environ.get('LDAP_ADMIN_PASSWORD', '')
"""Credentials used to allocate uids and to write new accounts."""

LDAP_TIMEOUT = os.environ.get('LDAP_TIMEOUT', '10')
"""Connect and receive timeout for directory calls, in seconds."""

#################### Provisioning ####################
UID_ALLOCATION_TRIES = os.environ.get('UID_ALLOCATION_TRIES', '10')
UID_ALLOCATION_DELAY = os.environ.get('UID_ALLOCATION_DELAY', '0.1')
"""Attempts to claim a uid, and the pause between them (seconds)."""

HOME_DIRECTORY_BASE = os.environ.get('HOME_DIRECTORY_BASE', '/home')
LOGIN_SHELL = os.environ.get('LOGIN_SHELL', '/bin/bash')

#################### Authentication ####################
AUTHENTICATION_METHOD = os.environ.get('AUTHENTICATION_METHOD', 'hash')
"""
How passwords are verified.

``hash`` compares against the stored ``userPassword`` hash; ``bind`` binds
to the directory as the user instead.
"""

#################### Logging ####################
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_JSON = os.environ.get('LOG_JSON', '1')
