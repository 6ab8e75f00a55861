"""Datastore configuration."""

import os

DATABASE_URI = os.environ.get('IDENTITYBASE_DATABASE_URI', 'sqlite://')
"""SQLAlchemy URL of the configuration and user-account database."""

DEFAULT_SCHEMA = os.environ.get('IDENTITYBASE_DEFAULT_SCHEMA') or None
"""Database schema in which the tables live. ``None`` uses the default."""

ECHO_SQL = bool(int(os.environ.get('IDENTITYBASE_ECHO_SQL', '0')))

SAVE_TIMEOUT = os.environ.get('IDENTITYBASE_SAVE_TIMEOUT')
"""Seconds to wait for an asynchronous save before giving up."""

CREATE_DB = bool(int(os.environ.get('IDENTITYBASE_CREATE_DB', '0')))
"""If 1, schema migrations are applied when the Flask extension starts."""

LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')
LOGJSON = bool(int(os.environ.get('LOGJSON', '1')))
"""If 1, log records are emitted as JSON."""
