"""
magpie.hub
~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
from contextlib import contextmanager
from threading import local

from magpie.base import Client
from magpie.conf import Options
from magpie.context import Scope
from magpie.integrations import IntegrationRegistry
from magpie.transport.base import Result, ResultStatus

__all__ = ('Hub', 'init', 'capture_message', 'capture_exception',
           'capture_event', 'capture_last_error', 'add_breadcrumb',
           'configure_scope', 'with_scope', 'push_scope', 'flush')

_local = local()

logger = logging.getLogger('magpie.errors')


class HubMeta(type):
    @property
    def current(cls):
        """Returns the hub bound to this thread, or the main hub."""
        hub = getattr(_local, 'hub', None)
        if hub is None:
            return cls.main
        return hub

    @property
    def main(cls):
        return _main_hub


class Hub(object, metaclass=HubMeta):
    """
    Binds a client to a stack of scopes.

    >>> hub = Hub(client)
    >>> with hub.push_scope() as scope:
    >>>     scope.set_tag('section', 'checkout')
    >>>     hub.capture_message('Payment declined')
    """

    def __init__(self, client=None, scope=None, integration_registry=None):
        if scope is None:
            scope = Scope()
        if integration_registry is None:
            integration_registry = IntegrationRegistry()
        # Used by the clients ``init`` creates
        self.integration_registry = integration_registry
        # The root layer is shared by every thread, pushed layers are not
        self._root = [client, scope]
        self._layers = local()
        self._last_event_id = None

    def __enter__(self):
        previous_hubs = getattr(self._layers, 'previous_hubs', None)
        if previous_hubs is None:
            previous_hubs = self._layers.previous_hubs = []
        previous_hubs.append(getattr(_local, 'hub', None))
        _local.hub = self
        return self

    def __exit__(self, exc_type, exc_value, tb):
        _local.hub = self._layers.previous_hubs.pop()

    def _get_stack(self):
        stack = getattr(self._layers, 'stack', None)
        if stack is None:
            stack = self._layers.stack = []
        return stack

    def _get_top(self):
        stack = self._get_stack()
        if stack:
            return stack[-1]
        return self._root

    def bind_client(self, client):
        self._get_top()[0] = client

    def get_client(self):
        return self._get_top()[0]

    def get_scope(self):
        return self._get_top()[1]

    def last_event_id(self):
        return self._last_event_id

    @contextmanager
    def push_scope(self):
        """
        Pushes a fork of the current scope for the duration of the block.
        """
        client, scope = self._get_top()
        layer = [client, scope.fork()]
        stack = self._get_stack()
        stack.append(layer)
        try:
            yield layer[1]
        finally:
            if stack and stack[-1] is layer:
                stack.pop()
            else:
                logger.warning('Scope pushed on %r was not the innermost one '
                               'when it was popped', self)
                for index, other in enumerate(stack):
                    if other is layer:
                        del stack[index]
                        break

    def with_scope(self, callback):
        with self.push_scope() as scope:
            return callback(scope)

    def configure_scope(self, callback=None):
        scope = self.get_scope()
        if callback is not None:
            callback(scope)
        return scope

    def get_integration(self, integration_cls):
        client = self.get_client()
        if client is None:
            return None
        return client.get_integration(integration_cls)

    def add_breadcrumb(self, message=None, category=None, level=None,
                       data=None, type=None, timestamp=None):
        if self.get_client() is None:
            return
        self.get_scope().add_breadcrumb(
            message=message, category=category, level=level, data=data,
            type=type, timestamp=timestamp)

    def capture_message(self, message, level=None, hint=None):
        __traceback_hide__ = True  # NOQA

        client, scope = self._get_top()
        if client is None:
            return None
        self._last_event_id = client.capture_message(message, level, scope, hint)
        return self._last_event_id

    def capture_exception(self, exception=None, hint=None):
        __traceback_hide__ = True  # NOQA

        client, scope = self._get_top()
        if client is None:
            return None
        self._last_event_id = client.capture_exception(exception, scope, hint)
        return self._last_event_id

    def capture_event(self, event, hint=None):
        __traceback_hide__ = True  # NOQA

        client, scope = self._get_top()
        if client is None:
            return None
        self._last_event_id = client.capture_event(event, hint, scope)
        return self._last_event_id

    def capture_last_error(self, hint=None):
        __traceback_hide__ = True  # NOQA

        client, scope = self._get_top()
        if client is None:
            return None
        self._last_event_id = client.capture_last_error(scope, hint)
        return self._last_event_id

    def flush(self, timeout=None):
        client = self.get_client()
        if client is None:
            return Result(ResultStatus.SUCCESS)
        return client.flush(timeout)


_main_hub = Hub()


def init(options=None, **kwargs):
    """
    Creates a client and binds it to the main hub.

    >>> import magpie
    >>> magpie.init(dsn='https://public@sentry.local/1', release='1.0')
    """
    if options is None:
        options = Options(**kwargs)
    elif kwargs:
        raise TypeError('Pass either an Options instance or keyword arguments')
    hub = Hub.main
    client = Client(options, integration_registry=hub.integration_registry)
    hub.bind_client(client)
    return client


def capture_message(message, level=None, hint=None):
    __traceback_hide__ = True  # NOQA
    return Hub.current.capture_message(message, level, hint)


def capture_exception(exception=None, hint=None):
    __traceback_hide__ = True  # NOQA
    return Hub.current.capture_exception(exception, hint)


def capture_event(event, hint=None):
    __traceback_hide__ = True  # NOQA
    return Hub.current.capture_event(event, hint)


def capture_last_error(hint=None):
    __traceback_hide__ = True  # NOQA
    return Hub.current.capture_last_error(hint)


def add_breadcrumb(*args, **kwargs):
    return Hub.current.add_breadcrumb(*args, **kwargs)


def configure_scope(callback=None):
    return Hub.current.configure_scope(callback)


def with_scope(callback):
    return Hub.current.with_scope(callback)


def push_scope():
    return Hub.current.push_scope()


def flush(timeout=None):
    return Hub.current.flush(timeout)
