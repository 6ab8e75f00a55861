"""Tests for :mod:`identitybase.app_logging`."""

import io
import json
import logging
from unittest import TestCase

from .. import app_logging


class TestSetupLogger(TestCase):
    """The package logger gets exactly one handler of ours."""

    def tearDown(self):
        logger = logging.getLogger('identitybase')
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

    def test_json(self):
        """Records are emitted as JSON."""
        logger = app_logging.setup_logger('DEBUG', json=True)
        stream = io.StringIO()
        logger.handlers[-1].setStream(stream)
        logging.getLogger('identitybase.services').info('Hello %s', 'there')

        record = json.loads(stream.getvalue())
        self.assertEqual(record['message'], 'Hello there')
        self.assertEqual(record['level'], 'INFO')
        self.assertEqual(record['name'], 'identitybase.services')

    def test_setup_twice(self):
        app_logging.setup_logger(json=False)
        logger = app_logging.setup_logger('WARNING', json=False)
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.WARNING)
