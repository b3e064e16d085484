"""External services: the LDAP directory."""
