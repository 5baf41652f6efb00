import logging
import sys

import mock

from magpie.base import Client
from magpie.events import Severity
from magpie.handlers.logging import MagpieHandler
from magpie.hub import Hub
from magpie.integrations import IntegrationRegistry
from magpie.utils.testutils import InMemoryTransport, TestCase


class LoggingIntegrationTest(TestCase):
    def setUp(self):
        self.transport = InMemoryTransport()
        self.client = Client({'default_integrations': False},
                             transport=self.transport,
                             integration_registry=IntegrationRegistry())
        self.handler = MagpieHandler(self.client)

    def make_record(self, msg, args=(), level=logging.INFO, extra=None, exc_info=None, name='root', pathname=__file__):
        record = logging.LogRecord(name, level, pathname, 27, msg, args, exc_info, 'make_record')
        if extra:
            for key, value in extra.items():
                record.__dict__[key] = value
        return record

    def test_logger_basic(self):
        record = self.make_record('This is a test error')
        self.handler.emit(record)

        self.assertEqual(len(self.transport.events), 1)
        event = self.transport.events.pop(0)
        self.assertEqual(event.logger, 'root')
        self.assertEqual(event.level, Severity.INFO)
        self.assertEqual(event.message, 'This is a test error')
        self.assertEqual(event.message_params, ())
        self.assertEqual(event.exceptions, [])

    def test_can_record(self):
        tests = [
            ("magpie", False),
            ("magpie.errors", False),
            ("magpie_utils", True),
            ("root", True),
        ]

        for test in tests:
            record = self.make_record("Test", name=test[0])
            self.assertEqual(self.handler.can_record(record), test[1])

    def test_own_loggers_are_not_sent(self):
        record = self.make_record('Internal', name='magpie.errors')
        with mock.patch('sys.stderr'):
            self.handler.emit(record)
        self.assertEqual(self.transport.events, [])

    def test_logger_extra_data(self):
        record = self.make_record('This is a test error', extra={'data': {
            'url': 'http://example.com',
        }, 'request_id': 'abc'})
        self.handler.emit(record)

        event = self.transport.events.pop(0)
        self.assertEqual(event.extra['url'], 'http://example.com')
        self.assertEqual(event.extra['request_id'], 'abc')
        assert 'msg' not in event.extra

    def test_logger_tags(self):
        record = self.make_record('This is a test error', extra={'tags': {'foo': 'bar'}})
        self.handler.emit(record)

        event = self.transport.events.pop(0)
        self.assertEqual(event.tags, {'foo': 'bar'})

    def test_logger_exc_info(self):
        try:
            raise ValueError('This is a test ValueError')
        except ValueError:
            record = self.make_record('This is a test info with an exception', exc_info=sys.exc_info())
        else:
            self.fail('Should have raised an exception')

        self.handler.emit(record)

        self.assertEqual(len(self.transport.events), 1)
        event = self.transport.events.pop(0)

        self.assertEqual(event.message, 'This is a test info with an exception')
        exc = event.exceptions[0]
        self.assertEqual(exc.type, 'ValueError')
        self.assertEqual(exc.value, 'This is a test ValueError')

    def test_message_params(self):
        record = self.make_record('This is a test of %s', args=('args',))
        self.handler.emit(record)

        event = self.transport.events.pop(0)
        self.assertEqual(event.message, 'This is a test of %s')
        self.assertEqual(event.message_params, ('args',))
        self.assertEqual(event.message_formatted, 'This is a test of args')

    def test_message_mapping_params(self):
        record = self.make_record('This is a test of %(what)s', args=({'what': 'mappings'},))
        self.handler.emit(record)

        event = self.transport.events.pop(0)
        self.assertEqual(event.message_formatted, 'This is a test of mappings')

    def test_level(self):
        self.handler.emit(self.make_record('Warning', level=logging.WARNING))
        self.handler.emit(self.make_record('Critical', level=logging.CRITICAL))

        self.assertEqual([e.level for e in self.transport.events],
                         [Severity.WARNING, Severity.FATAL])

    def test_client_arg(self):
        handler = MagpieHandler(self.client)
        self.assertEqual(handler.client, self.client)

    def test_dsn_arg(self):
        handler = MagpieHandler('http://public@example.com/1')
        self.assertEqual(str(handler.client.get_options().dsn), 'http://public@example.com/1')

    def test_invalid_first_arg_type(self):
        self.assertRaises(ValueError, MagpieHandler, object)

    def test_logging_level_set(self):
        handler = MagpieHandler(self.client, level=logging.ERROR)
        self.assertEqual(handler.level, logging.ERROR)

    def test_logging_level_not_set(self):
        handler = MagpieHandler(self.client)
        self.assertEqual(handler.level, logging.NOTSET)

    def test_uses_current_hub_without_client(self):
        handler = MagpieHandler()
        hub = Hub(self.client)
        hub.get_scope().set_tag('section', 'billing')

        with hub:
            handler.emit(self.make_record('From the hub'))

        event = self.transport.events.pop(0)
        self.assertEqual(event.tags, {'section': 'billing'})

    def test_without_any_client(self):
        handler = MagpieHandler()
        handler.emit(self.make_record('Nowhere'))
        self.assertEqual(self.transport.events, [])

    def test_emit_failure_is_printed(self):
        self.client.capture_event = mock.Mock(side_effect=Exception('broken'))
        with mock.patch('sys.stderr') as stderr:
            self.handler.emit(self.make_record('Failing'))
        assert stderr.write.called

    def test_attached_stacktrace_starts_at_the_caller(self):
        client = Client({'default_integrations': False, 'attach_stacktrace': True},
                        transport=self.transport,
                        integration_registry=IntegrationRegistry())
        logger = logging.getLogger('tests.handlers.stacktrace')
        logger.propagate = False
        handler = MagpieHandler(client)
        logger.addHandler(handler)
        try:
            logger.warning('With a stacktrace')
        finally:
            logger.removeHandler(handler)

        frames = self.transport.events[0].stacktrace.frames
        assert frames[-1].function == 'test_attached_stacktrace_starts_at_the_caller'
        modules = [f.module for f in frames]
        assert 'logging' not in modules
        assert 'magpie.handlers.logging' not in modules

    def test_emit_frames_are_hidden(self):
        client = Client({'default_integrations': False, 'attach_stacktrace': True},
                        transport=self.transport,
                        integration_registry=IntegrationRegistry())
        MagpieHandler(client).emit(self.make_record('Direct'))

        frames = self.transport.events[0].stacktrace.frames
        assert frames[-1].function == 'test_emit_frames_are_hidden'
