"""
Versioned schema migrations.

The schema is created or upgraded once, when a service starts, by calling
:func:`migrate`. Stores never touch the schema. Each applied version is
recorded in the ``schema_version`` table, so running :func:`migrate` again is
a no-op.
"""

import logging
from typing import Callable, List, NamedTuple, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, func, \
    select
from sqlalchemy.engine import Connection, Engine

from ...options import StoreOptions
from . import models, util

logger = logging.getLogger(__name__)

version_metadata = MetaData()

schema_version = Table(
    'schema_version', version_metadata,
    Column('version', Integer, primary_key=True, autoincrement=False),
    Column('description', String(255), nullable=False),
    Column('applied', util.UTCDateTime, nullable=False)
)


class Migration(NamedTuple):
    """A single step in the schema history."""

    version: int
    description: str
    upgrade: Callable[[Connection], None]


def _create_configuration_tables(connection: Connection) -> None:
    models.Base.metadata.create_all(connection,
                                    tables=models.CONFIGURATION_TABLES)


def _create_user_account_tables(connection: Connection) -> None:
    models.Base.metadata.create_all(connection,
                                    tables=models.USER_ACCOUNT_TABLES)


MIGRATIONS: List[Migration] = [
    Migration(1, 'Create configuration tables',
              _create_configuration_tables),
    Migration(2, 'Create user account tables', _create_user_account_tables),
]
"""All known migrations, in the order they must be applied."""

LATEST_VERSION = MIGRATIONS[-1].version


def _current_version(connection: Connection) -> int:
    version: Optional[int] = connection.execute(
        select(func.max(schema_version.c.version))
    ).scalar()
    return version or 0


def current_version(engine: Engine,
                    options: Optional[StoreOptions] = None) -> int:
    """Get the most recently applied schema version (0 if none)."""
    engine = util.bind(engine, options or StoreOptions())
    with engine.connect() as connection:
        if not engine.dialect.has_table(
                connection, schema_version.name,
                schema=(options.default_schema if options else None)):
            return 0
        return _current_version(connection)


def migrate(engine: Engine, options: Optional[StoreOptions] = None,
            target: Optional[int] = None) -> int:
    """
    Apply pending migrations up to ``target`` (default: the latest).

    Each migration runs in its own transaction together with the row that
    records it.

    Returns
    -------
    int
        The schema version after migrating.

    """
    options = options or StoreOptions()
    if target is None:
        target = LATEST_VERSION
    engine = util.bind(engine, options)

    with engine.begin() as connection:
        version_metadata.create_all(connection)
        version = _current_version(connection)

    for migration in MIGRATIONS:
        if migration.version <= version or migration.version > target:
            continue
        logger.info('Applying schema migration %i: %s', migration.version,
                    migration.description)
        with engine.begin() as connection:
            migration.upgrade(connection)
            connection.execute(schema_version.insert().values(
                version=migration.version,
                description=migration.description,
                applied=util.now()
            ))
        version = migration.version
    return version


def drop_all(engine: Engine, options: Optional[StoreOptions] = None) -> None:
    """Drop all datastore tables, including the version history."""
    engine = util.bind(engine, options or StoreOptions())
    with engine.begin() as connection:
        models.Base.metadata.drop_all(connection)
        version_metadata.drop_all(connection)
