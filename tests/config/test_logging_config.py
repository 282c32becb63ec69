"""
Unit tests for `config/logging_config.py` – JSON formatting and context-carrying loggers.
"""

import json
import logging
import unittest

from config.logging_config import ContextLoggerAdapter, StructuredLogFormatter, get_logger


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestStructuredLogFormatter(unittest.TestCase):
    def setUp(self):
        self.handler = ListHandler()
        self.base = logging.getLogger("tests.logging_config")
        self.base.addHandler(self.handler)
        self.base.setLevel(logging.DEBUG)
        self.addCleanup(self.base.removeHandler, self.handler)
        self.formatter = StructuredLogFormatter()

    def test_defaults_and_extra_fields_are_rendered(self):
        logger = ContextLoggerAdapter(self.base, {'thread_id': 'no_thread', 'workflow_name': 'no_workflow'})

        logger.info("stored", extra={'thread_id': 't-1', 'message_id': 'm-1'})

        data = json.loads(self.formatter.format(self.handler.records[0]))
        self.assertEqual(data['message'], 'stored')
        self.assertEqual(data['level'], 'INFO')
        self.assertEqual(data['thread_id'], 't-1')
        self.assertEqual(data['workflow_name'], 'no_workflow')
        self.assertEqual(data['message_id'], 'm-1')

    def test_bind_adds_fields(self):
        logger = ContextLoggerAdapter(self.base, {'thread_id': 'no_thread'}).bind(workflow_name='email')

        logger.warning("sent")

        data = json.loads(self.formatter.format(self.handler.records[0]))
        self.assertEqual(data['workflow_name'], 'email')
        self.assertEqual(data['thread_id'], 'no_thread')

    def test_unserializable_extra_is_repr(self):
        logger = ContextLoggerAdapter(self.base, {})

        logger.info("object", extra={'payload': object()})

        data = json.loads(self.formatter.format(self.handler.records[0]))
        self.assertTrue(data['payload'].startswith('<object object'))

    def test_exception_is_included(self):
        logger = ContextLoggerAdapter(self.base, {})
        try:
            raise ValueError("bad value")
        except ValueError:
            logger.error("failed", exc_info=True)

        data = json.loads(self.formatter.format(self.handler.records[0]))
        self.assertIn("ValueError: bad value", data['exception'])

    def test_get_logger_defaults(self):
        logger = get_logger("tests.defaults")
        self.assertEqual(logger.extra, {'thread_id': 'no_thread', 'workflow_name': 'no_workflow'})
