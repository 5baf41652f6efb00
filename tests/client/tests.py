# -*- coding: utf-8 -*-
import sys

import mock
import pytest

from magpie.base import Client, get_last_error, iter_exception_chain
from magpie.context import Scope
from magpie.events import (
    Event, EventHint, EventType, ExceptionMechanism, Severity)
from magpie.integrations import IntegrationRegistry
from magpie.transport import NullTransport, ThreadedHTTPTransport
from magpie.transport.base import Result, ResultStatus
from magpie.utils.stacks import Stacktrace
from magpie.utils.testutils import InMemoryTransport, TestCase


class MyError(Exception):
    pass


class MySubError(MyError):
    pass


def make_exception(exc):
    try:
        raise exc
    except Exception as e:
        return e


class ClientTest(TestCase):
    def setUp(self):
        self.transport = InMemoryTransport()

    def make_client(self, **options):
        options.setdefault('default_integrations', False)
        return Client(options, transport=self.transport,
                      integration_registry=IntegrationRegistry())

    def test_default_transport_without_dsn(self):
        client = Client({'default_integrations': False})
        assert isinstance(client.get_transport(), NullTransport)

    def test_default_transport_with_dsn(self):
        client = Client({'dsn': 'https://public@sentry.local/1',
                         'default_integrations': False})
        assert isinstance(client.get_transport(), ThreadedHTTPTransport)

    def test_options_can_be_given_as_dict(self):
        client = self.make_client(release='1.0')
        assert client.get_options().release == '1.0'

    def test_capture_message(self):
        client = self.make_client()

        event_id = client.capture_message('Hello world', Severity.WARNING)

        assert len(self.transport.events) == 1
        event = self.transport.events[0]
        assert event_id == event.id
        assert event.message == 'Hello world'
        assert event.level is Severity.WARNING
        assert event.type is EventType.EVENT

    def test_capture_message_sets_sdk_and_option_fields(self):
        client = self.make_client(release='1.2', environment='staging',
                                  server_name='web-1', tags={'region': 'eu'})

        client.capture_message('Hello')

        event = self.transport.events[0]
        assert event.sdk_identifier == 'magpie.python'
        assert event.sdk_version == client.sdk_version
        assert event.release == '1.2'
        assert event.environment == 'staging'
        assert event.server_name == 'web-1'
        assert event.tags == {'region': 'eu'}

    def test_environment_defaults_to_production(self):
        client = self.make_client()
        client.capture_message('Hello')
        assert self.transport.events[0].environment == 'production'

    def test_prefilled_fields_are_kept(self):
        client = self.make_client(release='1.2', environment='staging',
                                  server_name='web-1')
        event = Event.create_event()
        event.release = '0.9'
        event.environment = 'dev'
        event.server_name = 'worker-3'

        client.capture_event(event)

        sent = self.transport.events[0]
        assert sent.release == '0.9'
        assert sent.environment == 'dev'
        assert sent.server_name == 'worker-3'

    def test_event_tags_win_over_option_tags(self):
        client = self.make_client(tags={'region': 'eu', 'tier': 'web'})
        event = Event.create_event()
        event.set_tag('region', 'us')

        client.capture_event(event)

        assert self.transport.events[0].tags == {'region': 'us', 'tier': 'web'}

    def test_capture_exception(self):
        client = self.make_client()
        exc = make_exception(ValueError('boom'))

        event_id = client.capture_exception(exc)

        event = self.transport.events[0]
        assert event.id == event_id
        assert len(event.exceptions) == 1
        exception = event.exceptions[0]
        assert exception.type == 'ValueError'
        assert exception.value == 'boom'
        assert exception.mechanism.type == ExceptionMechanism.TYPE_GENERIC
        assert exception.mechanism.handled is True
        assert isinstance(exception.stacktrace, Stacktrace)
        assert exception.stacktrace.frames[-1].function == 'make_exception'

    def test_capture_exception_uses_current_exception(self):
        client = self.make_client()
        try:
            raise KeyError('missing')
        except KeyError:
            client.capture_exception()

        assert self.transport.events[0].exceptions[0].type == 'KeyError'

    def test_capture_exception_accepts_exc_info(self):
        client = self.make_client()
        try:
            raise KeyError('missing')
        except KeyError:
            client.capture_exception(sys.exc_info())

        assert self.transport.events[0].exceptions[0].type == 'KeyError'

    def test_capture_exception_without_exception(self):
        client = self.make_client()
        with pytest.raises(ValueError):
            client.capture_exception()

    def test_capture_exception_chain(self):
        client = self.make_client()
        try:
            try:
                try:
                    raise KeyError('first')
                except KeyError as e:
                    raise ValueError('second') from e
            except ValueError:
                raise RuntimeError('third')
        except RuntimeError as e:
            exc = e

        client.capture_exception(exc)

        event = self.transport.events[0]
        assert [e.type for e in event.exceptions] == [
            'RuntimeError', 'ValueError', 'KeyError']

    def test_capture_exception_uses_hint_mechanism(self):
        client = self.make_client()
        mechanism = ExceptionMechanism('custom', False)

        client.capture_exception(make_exception(ValueError('boom')),
                                 hint=EventHint(mechanism=mechanism))

        assert self.transport.events[0].exceptions[0].mechanism is mechanism

    def test_capture_warning_sets_level(self):
        client = self.make_client()
        client.capture_exception(make_exception(UserWarning('careful')))
        assert self.transport.events[0].level is Severity.WARNING

    def test_ignored_exception_class_and_subclasses(self):
        client = self.make_client(ignore_exceptions=[MyError])

        assert client.capture_exception(make_exception(MyError())) is None
        assert client.capture_exception(make_exception(MySubError())) is None
        assert client.capture_exception(make_exception(ValueError())) is not None
        assert len(self.transport.events) == 1

    def test_ignored_exception_by_name(self):
        client = self.make_client(ignore_exceptions=['ValueError'])

        assert client.capture_exception(make_exception(ValueError())) is None
        assert self.transport.events == []

    def test_ignored_exception_on_prepared_event(self):
        client = self.make_client(ignore_exceptions=[MyError])
        event = Event.create_event()

        hint = EventHint(exception=make_exception(MySubError()))
        assert client.capture_event(event, hint) is None
        assert self.transport.events == []

    def test_ignored_transaction(self):
        client = self.make_client(ignore_transactions=['/health'])
        event = Event.create_transaction()
        event.transaction = '/health'

        assert client.capture_event(event) is None

        event = Event.create_transaction()
        event.transaction = '/checkout'
        assert client.capture_event(event) is not None

        event = Event.create_transaction()
        assert client.capture_event(event) is not None
        assert len(self.transport.events) == 2

    def test_sample_rate_one_always_sends(self):
        client = self.make_client(sample_rate=1.0)
        for _ in range(20):
            client.capture_message('Hello')
        assert len(self.transport.events) == 20

    def test_sample_rate_zero_never_sends(self):
        client = self.make_client(sample_rate=0)
        for _ in range(20):
            assert client.capture_message('Hello') is None
        assert self.transport.events == []

    @mock.patch('magpie.base.random.randint')
    def test_sample_rate_boundary(self, randint):
        client = self.make_client(sample_rate=0.5)

        randint.return_value = 50
        assert client.capture_message('kept') is not None

        randint.return_value = 51
        assert client.capture_message('dropped') is None

        assert [e.message for e in self.transport.events] == ['kept']

    def test_sample_rate_does_not_apply_to_transactions(self):
        client = self.make_client(sample_rate=0)
        assert client.capture_event(Event.create_transaction()) is not None

    def test_before_send_can_discard(self):
        client = self.make_client(before_send=lambda event, hint: None)
        assert client.capture_message('Hello') is None
        assert self.transport.events == []

    def test_before_send_receives_hint(self):
        before_send = mock.Mock(side_effect=lambda event, hint: event)
        client = self.make_client(before_send=before_send)
        hint = EventHint(extra={'foo': 'bar'})

        client.capture_message('Hello', hint=hint)

        event, passed_hint = before_send.call_args[0]
        assert passed_hint is hint
        assert event.message == 'Hello'

    def test_before_send_callback_per_event_type(self):
        before_send = mock.Mock(side_effect=lambda event, hint: event)
        before_send_transaction = mock.Mock(return_value=None)
        before_send_check_in = mock.Mock(return_value=None)
        before_send_metrics = mock.Mock(return_value=None)
        client = self.make_client(
            before_send=before_send,
            before_send_transaction=before_send_transaction,
            before_send_check_in=before_send_check_in,
            before_send_metrics=before_send_metrics,
        )

        assert client.capture_event(Event.create_transaction()) is None
        assert client.capture_event(Event.create_check_in()) is None
        assert client.capture_event(Event.create_metrics()) is None

        assert before_send.call_count == 0
        assert before_send_transaction.call_count == 1
        assert before_send_check_in.call_count == 1
        assert before_send_metrics.call_count == 1

    def test_scope_is_applied(self):
        client = self.make_client()
        scope = Scope()
        scope.set_tag('user_tier', 'gold').set_extra('cart', 3)

        client.capture_message('Hello', scope=scope)

        event = self.transport.events[0]
        assert event.tags['user_tier'] == 'gold'
        assert event.extra['cart'] == 3

    def test_scope_processor_can_discard(self):
        client = self.make_client()
        scope = Scope()
        scope.add_event_processor(lambda event, hint: None)

        assert client.capture_message('Hello', scope=scope) is None
        assert self.transport.events == []

    def test_attach_stacktrace(self):
        client = self.make_client(attach_stacktrace=True)

        client.capture_message('Hello')

        event = self.transport.events[0]
        assert isinstance(event.stacktrace, Stacktrace)
        functions = [f.function for f in event.stacktrace.frames]
        assert functions[-1] == 'test_attach_stacktrace'
        assert 'capture_message' not in functions

    def test_no_stacktrace_by_default(self):
        client = self.make_client()
        client.capture_message('Hello')
        assert self.transport.events[0].stacktrace is None

    def test_attach_stacktrace_skips_events_with_exceptions(self):
        client = self.make_client(attach_stacktrace=True)
        client.capture_exception(make_exception(ValueError()))
        assert self.transport.events[0].stacktrace is None

    def test_hint_stacktrace_is_used(self):
        client = self.make_client()
        stacktrace = client.get_stacktrace_builder().build_from_backtrace()

        client.capture_message('Hello', hint=EventHint(stacktrace=stacktrace))

        assert self.transport.events[0].stacktrace is stacktrace

    def test_transport_error_is_logged(self):
        transport = mock.Mock()
        transport.send.side_effect = Exception('broken')
        logger = mock.Mock()
        client = Client({'default_integrations': False}, transport=transport,
                        logger=logger, integration_registry=IntegrationRegistry())

        assert client.capture_message('Hello') is None
        assert logger.error.call_count == 1

    def test_failed_send_returns_none(self):
        transport = mock.Mock()
        transport.send.return_value = Result(ResultStatus.FAILED)
        client = Client({'default_integrations': False}, transport=transport,
                        integration_registry=IntegrationRegistry())

        assert client.capture_message('Hello') is None

    def test_capture_last_error(self):
        client = self.make_client()
        try:
            raise ValueError('last one')
        except ValueError:
            event_id = client.capture_last_error()

        assert event_id == self.transport.events[0].id
        assert self.transport.events[0].exceptions[0].value == 'last one'

    @mock.patch('magpie.base.get_last_error')
    def test_capture_last_error_without_error(self, get_last_error):
        get_last_error.return_value = None
        client = self.make_client()

        assert client.capture_last_error() is None
        assert self.transport.events == []

    @mock.patch('magpie.base.get_last_error')
    def test_capture_last_error_with_empty_message(self, get_last_error):
        get_last_error.return_value = ValueError()
        client = self.make_client()

        assert client.capture_last_error() is None
        assert self.transport.events == []

    def test_camel_case_aliases(self):
        assert Client.captureMessage is Client.capture_message
        assert Client.captureException is Client.capture_exception
        assert Client.captureEvent is Client.capture_event
        assert Client.captureLastError is Client.capture_last_error

    def test_flush_delegates_to_transport(self):
        transport = mock.Mock()
        transport.close.return_value = Result(ResultStatus.SUCCESS)
        client = Client({'default_integrations': False}, transport=transport,
                        integration_registry=IntegrationRegistry())

        assert client.flush(3)
        transport.close.assert_called_once_with(3)

    def test_integration_registry(self):
        from magpie.integrations.environment import EnvironmentIntegration

        client = Client({}, transport=self.transport)
        assert client.get_integration(EnvironmentIntegration) is not None
        assert client.integration_registry.is_installed(EnvironmentIntegration)

        other = Client({}, transport=self.transport)
        assert other.integration_registry is not client.integration_registry

        registry = IntegrationRegistry()
        first = Client({}, transport=self.transport, integration_registry=registry)
        second = Client({}, transport=self.transport, integration_registry=registry)
        assert first.integration_registry is second.integration_registry is registry
        assert second.get_integration(EnvironmentIntegration) is not None


class IterExceptionChainTest(TestCase):
    def test_suppressed_context_is_skipped(self):
        try:
            try:
                raise KeyError('first')
            except KeyError:
                raise ValueError('second') from None
        except ValueError as e:
            exc = e

        assert [type(e) for e in iter_exception_chain(exc)] == [ValueError]

    def test_cycles_terminate(self):
        a = ValueError('a')
        b = KeyError('b')
        a.__cause__ = b
        b.__cause__ = a

        assert list(iter_exception_chain(a)) == [a, b]


class GetLastErrorTest(TestCase):
    def test_handled_exception(self):
        try:
            raise ValueError('now')
        except ValueError as e:
            assert get_last_error() is e
