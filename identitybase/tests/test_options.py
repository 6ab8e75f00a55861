"""Tests for :mod:`identitybase.options`."""

from unittest import TestCase

from ..options import StoreOptions


class TestStoreOptions(TestCase):
    """Options are read from application config."""

    def test_defaults(self):
        options = StoreOptions()
        self.assertIsNone(options.default_schema)
        self.assertIsNone(options.schema_translate_map)
        self.assertIsNone(options.save_timeout)

    def test_from_config(self):
        options = StoreOptions.from_config({
            'IDENTITYBASE_DEFAULT_SCHEMA': 'identity',
            'IDENTITYBASE_SAVE_TIMEOUT': '2.5',
            'IDENTITYBASE_ECHO_SQL': 1
        })
        self.assertEqual(options.schema_translate_map, {None: 'identity'})
        self.assertEqual(options.save_timeout, 2.5)
        self.assertTrue(options.echo_sql)
