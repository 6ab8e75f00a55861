"""
Flask integration.

Install with :func:`init_app`. Each application context then gets its own
:class:`.ConfigurationStore` and :class:`.UserAccountStore`, created on first
use and released when the context is torn down (typically at the end of a
request). Stores are not committed automatically; call ``save_changes``.
"""

import logging
from typing import NamedTuple, Optional, Type, TypeVar

from flask import Flask, current_app, g
from sqlalchemy.engine import Engine

from . import app_logging, config
from .exceptions import ArgumentNullError
from .options import StoreOptions
from .services.datastore import schema, util
from .services.datastore.stores import ConfigurationStore, UnitOfWork, \
    UserAccountStore

logger = logging.getLogger(__name__)

EXTENSION = 'identitybase'
STORES = {
    ConfigurationStore: 'identitybase_configuration_store',
    UserAccountStore: 'identitybase_user_account_store',
}

Store = TypeVar('Store', bound=UnitOfWork)


class _State(NamedTuple):
    engine: Engine
    options: StoreOptions


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach the datastore to ``app``."""
    if app is None:
        raise ArgumentNullError('app')
    app.config.setdefault('IDENTITYBASE_DATABASE_URI', config.DATABASE_URI)
    app.config.setdefault('IDENTITYBASE_CREATE_DB', config.CREATE_DB)
    app.config.setdefault('LOGLEVEL', config.LOGLEVEL)
    app.config.setdefault('LOGJSON', config.LOGJSON)
    app_logging.setup_logger(app.config['LOGLEVEL'], app.config['LOGJSON'])

    options = StoreOptions.from_config(app.config)
    engine = util.create_engine(app.config['IDENTITYBASE_DATABASE_URI'],
                                options)
    app.extensions[EXTENSION] = _State(engine, options)
    if app.config['IDENTITYBASE_CREATE_DB']:
        version = schema.migrate(engine, options)
        logger.info('Database schema is at version %i', version)
    app.teardown_appcontext(release_stores)


def get_engine() -> Engine:
    """Get the engine of the current application."""
    return _state().engine


def configuration_store() -> ConfigurationStore:
    """Get the configuration store of the current application context."""
    return _get_store(ConfigurationStore)


def user_account_store() -> UserAccountStore:
    """Get the user account store of the current application context."""
    return _get_store(UserAccountStore)


def release_stores(exception: Optional[BaseException] = None) -> None:
    """Close the stores opened in the current application context."""
    for key in STORES.values():
        store: Optional[UnitOfWork] = g.pop(key, None)
        if store is not None:
            store.close()


def _state() -> _State:
    state: _State = current_app.extensions[EXTENSION]
    return state


def _get_store(store_class: Type[Store]) -> Store:
    key = STORES[store_class]
    store: Optional[Store] = g.get(key)
    if store is None or store.closed:
        state = _state()
        store = store_class(state.engine, state.options)
        setattr(g, key, store)
    return store
