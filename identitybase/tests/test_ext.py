"""Tests for :mod:`identitybase.ext`."""

from unittest import TestCase

from flask import Flask

from .. import domain, ext
from ..exceptions import ArgumentNullError
from ..services import datastore


class TestExtension(TestCase):
    """Stores are bound to the application context."""

    def setUp(self):
        """Create an app with an in-memory datastore."""
        self.app = Flask('test')
        self.app.config['IDENTITYBASE_DATABASE_URI'] = 'sqlite://'
        self.app.config['IDENTITYBASE_CREATE_DB'] = True
        self.app.config['LOGJSON'] = False
        ext.init_app(self.app)

    def test_init_app_requires_app(self):
        with self.assertRaises(ArgumentNullError):
            ext.init_app(None)

    def test_schema_is_created(self):
        with self.app.app_context():
            engine = ext.get_engine()
        self.assertEqual(datastore.current_version(engine),
                         datastore.schema.LATEST_VERSION)

    def test_one_store_per_context(self):
        """The same store is returned until the context is torn down."""
        with self.app.app_context():
            store = ext.configuration_store()
            self.assertIs(ext.configuration_store(), store)
            self.assertIsNot(ext.user_account_store(), store)
        self.assertTrue(store.closed)

        with self.app.app_context():
            self.assertIsNot(ext.configuration_store(), store)

    def test_closed_store_is_replaced(self):
        with self.app.app_context():
            store = ext.user_account_store()
            store.close()
            self.assertFalse(ext.user_account_store().closed)

    def test_save_in_request(self):
        """Changes saved in one request are visible in the next."""
        with self.app.test_request_context():
            store = ext.configuration_store()
            store.clients.add(domain.Client(client_id='foo'))
            self.assertEqual(store.save_changes(), 1)

        with self.app.test_request_context():
            client = ext.configuration_store().clients \
                .find_by_client_id('foo')
        self.assertIsNotNone(client)
        self.assertEqual(client.protocol_type, domain.Client.OIDC)
