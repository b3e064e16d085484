"""
Identity provisioning gateway backed by an LDAP directory.

This package creates POSIX accounts, each paired with a personal group of the
same name and number, and checks passwords against them. The directory is
the system of record; nothing is stored locally.

Three pieces carry the integrity guarantees:

- :mod:`.allocator` claims uid numbers from a shared counter record without
  locks, retrying when another writer gets there first;
- :mod:`.accounts` writes the account and group records, removing the
  account again if its group cannot be written;
- :mod:`.passwords` produces and checks salted ``{SSHA}`` hashes in constant
  time.

Quick start
-----------

.. code-block:: python

   from maker_auth.factory import create_app

   app = create_app()    # Reads LDAP_* settings from the environment.

Or, without Flask:

.. code-block:: python

   from maker_auth.gateway import IdentityGateway
   from maker_auth.settings import Settings

   gateway = IdentityGateway(Settings(
       server='ldap://localhost:389',
       base_dn='dc=example,dc=org',
       admin_dn='cn=root,dc=example,dc=org',
       admin_password='secret'
   ))
   gateway.create_user('Ada', 'Lovelace', 'ada', 'secret')
"""

from .domain import UserProfile, Account, Group
