"""Fixtures shared by the datastore and integration tests."""

import pytest

from identitybase.options import StoreOptions
from identitybase.services import datastore


@pytest.fixture
def database_uri(tmp_path):
    return f"sqlite:///{tmp_path / 'identitybase.db'}"


@pytest.fixture
def options():
    return StoreOptions()


@pytest.fixture
def engine(database_uri, options):
    """An engine on a migrated, empty database."""
    engine = datastore.create_engine(database_uri, options)
    datastore.migrate(engine, options)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def configuration_store(engine, options):
    with datastore.ConfigurationStore(engine, options) as store:
        yield store


@pytest.fixture
def user_account_store(engine, options):
    with datastore.UserAccountStore(engine, options) as store:
        yield store
