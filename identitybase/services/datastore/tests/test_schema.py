"""Tests for :mod:`identitybase.services.datastore.schema`."""

from sqlalchemy import inspect

from ... import datastore
from ..schema import LATEST_VERSION, schema_version


def test_migrate_empty_database(database_uri, options):
    engine = datastore.create_engine(database_uri, options)
    assert datastore.current_version(engine, options) == 0

    assert datastore.migrate(engine, options) == LATEST_VERSION
    assert datastore.current_version(engine, options) == LATEST_VERSION
    tables = set(inspect(engine).get_table_names())
    assert {'clients', 'client_scopes', 'identity_resources', 'api_scopes',
            'user_accounts', 'external_accounts',
            'user_account_claims'} <= tables


def test_migrate_is_repeatable(engine, options):
    """Running migrations again changes nothing."""
    assert datastore.migrate(engine, options) == LATEST_VERSION
    with engine.connect() as connection:
        rows = connection.execute(schema_version.select()).fetchall()
    assert [row.version for row in rows] == list(range(1, LATEST_VERSION + 1))


def test_migrate_to_target(database_uri, options):
    """Migrations can stop at an intermediate version."""
    engine = datastore.create_engine(database_uri, options)
    assert datastore.migrate(engine, options, target=1) == 1
    tables = set(inspect(engine).get_table_names())
    assert 'clients' in tables
    assert 'user_accounts' not in tables

    assert datastore.migrate(engine, options) == LATEST_VERSION
    assert 'user_accounts' in set(inspect(engine).get_table_names())


def test_drop_all(engine, options):
    datastore.drop_all(engine, options)
    assert inspect(engine).get_table_names() == []
    assert datastore.current_version(engine, options) == 0


def test_is_available(engine):
    assert datastore.is_available(engine)


def test_is_not_available(tmp_path, options):
    """A database that cannot be opened is reported as unavailable."""
    missing = tmp_path / 'missing' / 'identitybase.db'
    engine = datastore.create_engine(f'sqlite:///{missing}', options)
    assert not datastore.is_available(engine)


def test_in_memory_database(options):
    """An in-memory database is shared by all connections of its engine."""
    engine = datastore.create_engine('sqlite://', options)
    datastore.migrate(engine, options)
    with datastore.ConfigurationStore(engine, options) as store:
        assert store.clients.list() == []
