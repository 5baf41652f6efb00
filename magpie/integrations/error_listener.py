"""
magpie.integrations.error_listener
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import sys
import threading

from magpie.events import ExceptionMechanism
from magpie.integrations import Integration

logger = logging.getLogger('magpie.errors')

IGNORED_EXCEPTIONS = (KeyboardInterrupt, SystemExit)


class AbstractErrorListenerIntegration(Integration):
    mechanism_type = ExceptionMechanism.TYPE_GENERIC

    def capture_exception(self, hub, exception):
        """
        Captures ``exception`` through ``hub`` marking every exception of
        the event as unhandled.
        """
        def callback(scope):
            scope.add_event_processor(self.add_exception_mechanism_to_event)
            return hub.capture_exception(exception)

        return hub.with_scope(callback)

    def add_exception_mechanism_to_event(self, event, hint=None):
        for exception in event.exceptions:
            data = {}
            if exception.mechanism is not None:
                data = exception.mechanism.data
            exception.mechanism = ExceptionMechanism(self.mechanism_type, False, data)
        return event

    @classmethod
    def handle(cls, exc_value):
        from magpie.hub import Hub

        if exc_value is None or isinstance(exc_value, IGNORED_EXCEPTIONS):
            return

        hub = Hub.current
        integration = hub.get_integration(cls)
        if integration is None:
            return

        try:
            integration.capture_exception(hub, exc_value)
        except Exception:
            logger.error('Failed to capture the uncaught exception', exc_info=True)


class ExceptionListenerIntegration(AbstractErrorListenerIntegration):
    """
    Reports exceptions which reach ``sys.excepthook``.
    """
    mechanism_type = 'excepthook'

    def setup_once(self):
        previous_hook = sys.excepthook
        if getattr(previous_hook, '_magpie_hook', False):
            return
        integration_cls = type(self)

        def magpie_excepthook(exc_type, exc_value, tb):
            integration_cls.handle(exc_value)
            return previous_hook(exc_type, exc_value, tb)

        magpie_excepthook._magpie_hook = True
        sys.excepthook = magpie_excepthook


class ThreadExceptionListenerIntegration(AbstractErrorListenerIntegration):
    """
    Reports exceptions which escape the target of a ``threading.Thread``.
    """
    mechanism_type = 'threading'

    def setup_once(self):
        previous_hook = threading.excepthook
        if getattr(previous_hook, '_magpie_hook', False):
            return
        integration_cls = type(self)

        def magpie_threading_excepthook(args):
            integration_cls.handle(args.exc_value)
            return previous_hook(args)

        magpie_threading_excepthook._magpie_hook = True
        threading.excepthook = magpie_threading_excepthook
