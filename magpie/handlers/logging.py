"""
magpie.handlers.logging
~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import inspect
import logging
import sys
import traceback

from magpie.base import Client
from magpie.events import Event, EventHint, Severity
from magpie.hub import Hub
from magpie.utils.encoding import to_string, to_unicode

RESERVED = frozenset((
    'args', 'asctime', 'created', 'data', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'message', 'module',
    'msecs', 'msg', 'name', 'pathname', 'process', 'processName',
    'relativeCreated', 'stack', 'stack_info', 'tags', 'taskName', 'thread',
    'threadName',
))


def is_logging_module(module_name):
    return module_name == 'logging' or module_name.startswith('logging.')


class MagpieHandler(logging.Handler):
    """
    Sends log records as events.

    >>> handler = MagpieHandler(client)
    >>> logging.getLogger().addHandler(handler)

    Without a client the handler reports through the client bound to the
    current hub.
    """

    def __init__(self, client=None, level=logging.NOTSET, scope=None):
        if isinstance(client, str):
            client = Client({'dsn': client})
        elif client is not None and not isinstance(client, Client):
            raise ValueError(
                'The first argument to %s must be either a Client instance or a DSN, got %r instead.' % (
                    self.__class__.__name__,
                    client,
                ))
        self.client = client
        self.scope = scope
        logging.Handler.__init__(self, level=level)

    def emit(self, record):
        __traceback_hide__ = True  # NOQA

        try:
            self.format(record)

            # Avoid typical config issues by overriding loggers behavior
            if not self.can_record(record):
                print(to_string(record.message), file=sys.stderr)
                return

            return self._emit(record)
        except Exception:
            print("Top level magpie exception caught - failed creating log record",
                  file=sys.stderr)
            print(to_string(record.msg), file=sys.stderr)
            print(to_string(traceback.format_exc()), file=sys.stderr)

    def can_record(self, record):
        return not (
            record.name == "magpie" or
            record.name.startswith("magpie.")
        )

    def get_client_and_scope(self):
        if self.client is not None:
            return self.client, self.scope
        hub = Hub.current
        return hub.get_client(), hub.get_scope()

    def _get_targetted_stack(self, stack):
        """
        Drops the frames from the ``logging`` module and everything called
        by it, leaving the caller of the logger on top.
        """
        frames = []
        started = False
        last_mod = ''
        for item in stack:
            if not started:
                module_name = item[0].f_globals.get('__name__', '')
                if is_logging_module(last_mod) and not is_logging_module(module_name):
                    started = True
                else:
                    last_mod = module_name
                    continue
            frames.append(item)
        return frames

    def _emit(self, record):
        __traceback_hide__ = True  # NOQA

        client, scope = self.get_client_and_scope()
        if client is None:
            return None

        extra = getattr(record, 'data', None)
        if not isinstance(extra, dict):
            if extra:
                extra = {'data': extra}
            else:
                extra = {}

        for k, v in vars(record).items():
            if k in RESERVED or k.startswith('_'):
                continue
            extra[k] = v

        if isinstance(record.args, tuple):
            params = record.args
        elif record.args:
            params = (record.args,)
        else:
            params = ()

        event = Event.create_event()
        event.set_message(to_unicode(record.msg), params, record.getMessage())
        event.level = Severity.from_logging_level(record.levelno)
        event.logger = record.name
        event.extra = extra

        tags = getattr(record, 'tags', None)
        if isinstance(tags, dict):
            for key, value in tags.items():
                event.set_tag(key, value)

        hint = EventHint(extra={'log_record': record})

        # If there's no exception being processed, exc_info may be a 3-tuple of None
        # http://docs.python.org/library/sys.html#sys.exc_info
        if record.exc_info and all(record.exc_info):
            hint.exception = record.exc_info[1]
        elif client.get_options().should_attach_stacktrace():
            frames = self._get_targetted_stack(inspect.stack(0))
            if frames:
                hint.stacktrace = client.get_stacktrace_builder().build_from_backtrace(frames)

        return client.capture_event(event, hint, scope)
