"""
magpie.base
~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import random
import sys

import magpie
from magpie.conf import Options
from magpie.events import (
    DEFAULT_ENVIRONMENT, Event, EventHint, EventType, ExceptionDataBag,
    ExceptionMechanism, Severity)
from magpie.integrations import IntegrationRegistry
from magpie.transport import NullTransport, ThreadedHTTPTransport
from magpie.utils import merge_dicts
from magpie.utils.encoding import to_unicode
from magpie.utils.stacks import StacktraceBuilder

__all__ = ('Client',)

SDK_IDENTIFIER = 'magpie.python'

BEFORE_SEND_CALLBACKS = {
    EventType.EVENT: 'before_send',
    EventType.TRANSACTION: 'before_send_transaction',
    EventType.CHECK_IN: 'before_send_check_in',
    EventType.METRICS: 'before_send_metrics',
}


def iter_exception_chain(exception):
    """
    Yields ``exception`` followed by the exceptions it was caused by,
    following ``__cause__`` and then ``__context__`` like tracebacks do.
    """
    seen = set()
    while exception is not None and id(exception) not in seen:
        seen.add(id(exception))
        yield exception
        if exception.__cause__ is not None:
            exception = exception.__cause__
        elif not exception.__suppress_context__:
            exception = exception.__context__
        else:
            exception = None


def get_exception_type_names(exc_type):
    names = set()
    for cls in getattr(exc_type, '__mro__', ()):
        names.add(cls.__name__)
        names.add('%s.%s' % (cls.__module__, cls.__qualname__))
    return names


def get_last_error():
    """
    Returns the exception being handled right now, or else the last one
    which went unhandled in the interpreter.
    """
    error = sys.exc_info()[1]
    if error is None:
        error = getattr(sys, 'last_exc', None) or getattr(sys, 'last_value', None)
    return error


class Client(object):
    """
    The client prepares events, applies the filtering options and hands
    them to the transport.

    >>> from magpie import Client

    >>> # Read the DSN from ``os.environ['SENTRY_DSN']``
    >>> client = Client()

    >>> # Specify options explicitly
    >>> client = Client({'dsn': 'https://public@sentry.local/1'})

    >>> # Record an exception
    >>> try:
    >>>     1/0
    >>> except ZeroDivisionError as e:
    >>>     event_id = client.capture_exception(e)
    >>>     print("Exception caught; reference is %s" % event_id)
    """
    logger = logging.getLogger('magpie')

    def __init__(self, options=None, transport=None, sdk_identifier=None,
                 sdk_version=None, serializer=None, logger=None,
                 integration_registry=None):
        if options is None:
            options = Options()
        elif isinstance(options, dict):
            options = Options(**options)

        self.options = options
        self.sdk_identifier = sdk_identifier or SDK_IDENTIFIER
        self.sdk_version = sdk_version or magpie.VERSION

        if logger is not None:
            self.logger = logger

        if transport is None:
            transport = self.get_default_transport()
        self.transport = transport

        self.stacktrace_builder = StacktraceBuilder(options, serializer)

        if integration_registry is None:
            integration_registry = IntegrationRegistry()
        self.integration_registry = integration_registry
        self.integrations = self.integration_registry.setup_integrations(
            options, self.logger)

        if options.dsn is None:
            self.logger.info(
                'magpie is not configured (no DSN), events will not be sent '
                'anywhere. Please see the documentation for more information.')

    def __repr__(self):
        return '<%s: %r>' % (type(self).__name__, self.options)

    def get_default_transport(self):
        if self.options.dsn is None:
            return NullTransport()
        return ThreadedHTTPTransport(self.options)

    def get_options(self):
        return self.options

    def get_transport(self):
        return self.transport

    def get_stacktrace_builder(self):
        return self.stacktrace_builder

    def get_integration(self, integration_cls):
        return self.integrations.get(integration_cls)

    def capture_message(self, message, level=None, scope=None, hint=None):
        """
        Creates an event from ``message``.

        >>> client.capture_message('My event just happened!', Severity.INFO)
        """
        __traceback_hide__ = True  # NOQA

        event = Event.create_event()
        event.set_message(message)
        event.level = level

        return self.capture_event(event, hint, scope)

    def capture_exception(self, exception=None, scope=None, hint=None):
        """
        Creates an event from an exception.

        >>> try:
        >>>     1/0
        >>> except ZeroDivisionError as e:
        >>>     client.capture_exception(e)

        If ``exception`` is not provided, the exception currently being
        handled is used. An ``exc_info`` tuple is accepted as well.
        """
        __traceback_hide__ = True  # NOQA

        if exception is None:
            exception = sys.exc_info()[1]
        elif isinstance(exception, tuple):
            exception = exception[1]

        if exception is None:
            raise ValueError('No exception found')

        if self.is_ignored_exception(type(exception)):
            self.logger.info(
                'The exception will be discarded because it matches an entry '
                'in "ignore_exceptions".',
                extra={'class_name': type(exception).__name__})
            return None

        if hint is None:
            hint = EventHint()
        if hint.exception is None:
            hint.exception = exception

        return self.capture_event(Event.create_event(), hint, scope)

    def capture_event(self, event, hint=None, scope=None):
        """
        Prepares ``event`` and pipes it off to the transport. Returns the
        id of the event or ``None`` if it was discarded or could not be
        sent.
        """
        __traceback_hide__ = True  # NOQA

        event = self.prepare_event(event, hint, scope)
        if event is None:
            return None

        try:
            result = self.transport.send(event)
            sent_event = result.event
            if sent_event is not None:
                return sent_event.id
        except Exception as e:
            self.logger.error(
                'Failed to send the event to Sentry. Reason: "%s".', e,
                exc_info=True, extra={'event': event})

        return None

    def capture_last_error(self, scope=None, hint=None):
        """
        Captures the most recent error of the interpreter, if any.
        """
        __traceback_hide__ = True  # NOQA

        error = get_last_error()
        if error is None or not to_unicode(error):
            return None

        return self.capture_exception(error, scope, hint)

    # camelCase aliases of the capture API
    captureMessage = capture_message
    captureException = capture_exception
    captureEvent = capture_event
    captureLastError = capture_last_error

    def flush(self, timeout=None):
        """
        Waits up to ``timeout`` seconds for the transport to send the queued
        events. The returned result is truthy if everything was sent.
        """
        return self.transport.close(timeout)

    def prepare_event(self, event, hint=None, scope=None):
        """
        Assembles an event and prepares it to be sent off. Returns ``None``
        if the event must be discarded.
        """
        __traceback_hide__ = True  # NOQA

        if hint is not None:
            if hint.exception is not None and not event.exceptions:
                self.add_exception_to_event(event, hint.exception, hint)

            if hint.stacktrace is not None and event.stacktrace is None:
                event.stacktrace = hint.stacktrace

        self.add_missing_stacktrace_to_event(event)

        event.sdk_identifier = self.sdk_identifier
        event.sdk_version = self.sdk_version
        event.tags = merge_dicts(self.options.tags, event.tags)

        if event.server_name is None:
            event.server_name = self.options.server_name

        if event.release is None:
            event.release = self.options.release

        if event.environment is None:
            event.environment = self.options.environment or DEFAULT_ENVIRONMENT

        description = event.get_description()

        # only sample with the `sample_rate` on errors/messages
        if event.type is EventType.EVENT and self.should_discard_by_sampling():
            self.logger.info(
                'The %s will be discarded because it has been sampled.',
                description, extra={'event': event})
            return None

        event = self.apply_ignore_options(event, description)
        if event is None:
            return None

        if scope is not None:
            before_event_processors = event
            event = scope.apply_to_event(event, hint, self.options)
            if event is None:
                self.logger.info(
                    'The %s will be discarded because one of the event '
                    'processors returned "None".', description,
                    extra={'event': before_event_processors})
                return None

        before_send = event
        event = self.apply_before_send_callback(event, hint)
        if event is None:
            self.logger.info(
                'The %s will be discarded because the "%s" callback returned '
                '"None".', description, BEFORE_SEND_CALLBACKS[before_send.type],
                extra={'event': before_send})

        return event

    def should_discard_by_sampling(self):
        sample_rate = self.options.sample_rate
        return sample_rate < 1 and random.randint(1, 100) / 100.0 > sample_rate

    def is_ignored_exception(self, exc_type=None, type_name=None):
        """
        Returns whether an exception class (or, lacking one, a type name)
        matches an entry of ``ignore_exceptions``. Subclasses of an entry
        match too.
        """
        if exc_type is not None:
            names = get_exception_type_names(exc_type)
        else:
            names = set([type_name])

        for ignored in self.options.ignore_exceptions:
            if isinstance(ignored, type):
                if exc_type is not None:
                    if issubclass(exc_type, ignored):
                        return True
                elif type_name in (ignored.__name__, '%s.%s' % (ignored.__module__, ignored.__qualname__)):
                    return True
            elif ignored in names:
                return True
        return False

    def apply_ignore_options(self, event, description):
        if event.type is EventType.EVENT:
            for exception in event.exceptions:
                if self.is_ignored_exception(exception.exception_type,
                                             exception.qualified_type):
                    self.logger.info(
                        'The %s will be discarded because it matches an entry '
                        'in "ignore_exceptions".', description,
                        extra={'event': event})
                    return None

        if event.type is EventType.TRANSACTION:
            if event.transaction is None:
                return event

            if event.transaction in self.options.ignore_transactions:
                self.logger.info(
                    'The %s will be discarded because it matches an entry in '
                    '"ignore_transactions".', description,
                    extra={'event': event})
                return None

        return event

    def apply_before_send_callback(self, event, hint):
        callback = getattr(self.options, BEFORE_SEND_CALLBACKS[event.type])
        return callback(event, hint)

    def add_missing_stacktrace_to_event(self, event):
        """
        Adds a stacktrace of the current call stack to events which carry
        neither a stacktrace nor exceptions, if ``attach_stacktrace`` is on.
        """
        __traceback_hide__ = True  # NOQA

        if not self.options.should_attach_stacktrace():
            return

        if event.stacktrace is not None or event.exceptions:
            return

        event.stacktrace = self.stacktrace_builder.build_from_backtrace()

    def add_exception_to_event(self, event, exception, hint):
        """
        Stores ``exception`` and the chain of exceptions which caused it in
        ``event``, outermost first.
        """
        if isinstance(exception, Warning) and event.level is None:
            event.level = Severity.WARNING

        exceptions = []
        for exc in iter_exception_chain(exception):
            mechanism = hint.mechanism
            if mechanism is None:
                code = getattr(exc, 'errno', None) or 0
                mechanism = ExceptionMechanism(
                    ExceptionMechanism.TYPE_GENERIC, True, {'code': code})
            exceptions.append(ExceptionDataBag(
                exc, self.stacktrace_builder.build_from_exception(exc), mechanism))

        event.exceptions = exceptions
