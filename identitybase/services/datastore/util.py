"""Helpers for engines, timestamps and identifiers."""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from pytz import UTC
from sqlalchemy import DateTime, TypeDecorator, \
    create_engine as _create_engine, event, text
from sqlalchemy.engine import Dialect, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ... import config
from ...options import StoreOptions

logger = logging.getLogger(__name__)

MEMORY_URIS = ('sqlite://', 'sqlite:///:memory:')


def now() -> datetime:
    """Get the current time in UTC."""
    return datetime.now(tz=UTC)


def as_utc(t: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive :class:`datetime` read back from the database."""
    if t is None:
        return None
    if t.tzinfo is None:
        return UTC.localize(t)
    return t.astimezone(UTC)


class UTCDateTime(TypeDecorator):  # type: ignore
    """
    A timestamp stored as naive UTC and read back as aware UTC.

    Aware values are converted to UTC before they are written; naive values
    are taken to be UTC already.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime],
                           dialect: Dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime],
                             dialect: Dialect) -> Optional[datetime]:
        return as_utc(value)


def new_id() -> str:
    """Generate a new row identifier."""
    return str(uuid.uuid4())


def create_engine(database_uri: Optional[str] = None,
                  options: Optional[StoreOptions] = None,
                  **kwargs: Any) -> Engine:
    """
    Create an engine suitable for the datastore.

    SQLite connections are opened with ``check_same_thread=False``, because
    asynchronous saves commit from a worker thread, and with foreign keys
    enforced.
    """
    if database_uri is None:
        database_uri = config.DATABASE_URI
    if options is None:
        options = StoreOptions.from_config()
    if database_uri.startswith('sqlite'):
        connect_args = kwargs.setdefault('connect_args', {})
        connect_args.setdefault('check_same_thread', False)
        # An in-memory database only exists on the connection that made it.
        if database_uri in MEMORY_URIS:
            kwargs.setdefault('poolclass', StaticPool)
    engine = _create_engine(database_uri, echo=options.echo_sql, **kwargs)
    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def bind(engine: Engine, options: StoreOptions) -> Engine:
    """Apply the schema translation in ``options`` to ``engine``."""
    translate = options.schema_translate_map
    if translate is None:
        return engine
    return engine.execution_options(schema_translate_map=translate)


def is_available(engine: Engine) -> bool:
    """Check our connection to the database."""
    try:
        with engine.connect() as connection:
            connection.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
