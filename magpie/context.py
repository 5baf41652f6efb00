"""
magpie.context
~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import copy
from contextlib import contextmanager
from itertools import chain

from magpie.breadcrumbs import BreadcrumbBuffer
from magpie.conf import defaults
from magpie.events import Event, EventHint
from magpie.utils import merge_dicts

__all__ = ('Scope', 'add_global_event_processor',
           'clear_global_event_processors', 'push_scope', 'with_scope')

# Processors shared by every scope of the process. Integrations register
# theirs here from ``setup_once``.
_global_event_processors = []
_global_event_processor_keys = set()


def add_global_event_processor(processor, key=None):
    """
    Registers ``processor`` for every scope. When ``key`` is given only
    the first processor registered under it is kept, so an integration
    set up by several registries runs once per event.
    """
    if key is not None:
        if key in _global_event_processor_keys:
            return processor
        _global_event_processor_keys.add(key)
    _global_event_processors.append(processor)
    return processor


def clear_global_event_processors():
    del _global_event_processors[:]
    _global_event_processor_keys.clear()


def get_global_event_processors():
    return list(_global_event_processors)


class Scope(object):
    """
    Stores context until cleared and applies it to events.

    A scope is not thread-safe. Share one between threads only behind a
    lock, or give each operation its own fork:

    >>> with push_scope(scope) as local_scope:
    >>>     local_scope.set_tag('job', 'import')
    >>>     client.capture_message('Import started', scope=local_scope)
    """

    def __init__(self, max_breadcrumbs=defaults.MAX_BREADCRUMBS):
        self.tags = {}
        self.extra = {}
        self.contexts = {}
        self.user = None
        self.level = None
        self.fingerprint = []
        self.transaction = None
        self.breadcrumbs = BreadcrumbBuffer(max_breadcrumbs)
        self.event_processors = []

    def __repr__(self):
        return '<%s: tags=%r>' % (type(self).__name__, self.tags)

    def set_tag(self, key, value):
        self.tags[key] = str(value)
        return self

    def set_tags(self, tags):
        for key, value in tags.items():
            self.set_tag(key, value)
        return self

    def remove_tag(self, key):
        self.tags.pop(key, None)
        return self

    def set_extra(self, key, value):
        self.extra[key] = value
        return self

    def set_extras(self, extras):
        self.extra.update(extras)
        return self

    def set_context(self, name, value):
        self.contexts[name] = dict(value)
        return self

    def remove_context(self, name):
        self.contexts.pop(name, None)
        return self

    def set_user(self, user):
        self.user = dict(user) if user is not None else None
        return self

    def set_level(self, level):
        self.level = level
        return self

    def set_fingerprint(self, fingerprint):
        self.fingerprint = list(fingerprint)
        return self

    def set_transaction(self, name):
        self.transaction = name
        return self

    def add_breadcrumb(self, message=None, category=None, level=None,
                       data=None, type=None, timestamp=None):
        self.breadcrumbs.record(timestamp=timestamp, level=level,
                                message=message, category=category,
                                data=data, type=type)
        return self

    def clear_breadcrumbs(self):
        self.breadcrumbs.clear()
        return self

    def add_event_processor(self, processor):
        self.event_processors.append(processor)
        return self

    def clear(self):
        self.tags = {}
        self.extra = {}
        self.contexts = {}
        self.user = None
        self.level = None
        self.fingerprint = []
        self.transaction = None
        self.breadcrumbs.clear()
        self.event_processors = []
        return self

    def fork(self):
        """
        Returns a copy of this scope. Changes made to either one are not
        visible in the other.
        """
        rv = copy.copy(self)
        rv.tags = dict(self.tags)
        rv.extra = dict(self.extra)
        rv.contexts = copy.deepcopy(self.contexts)
        rv.user = dict(self.user) if self.user is not None else None
        rv.fingerprint = list(self.fingerprint)
        rv.breadcrumbs = self.breadcrumbs.copy()
        rv.event_processors = list(self.event_processors)
        return rv

    def apply_to_event(self, event, hint=None, options=None):
        """
        Merges the scope data into ``event`` and runs the global and then
        the scope's own event processors. Values already present on the
        event are kept. Returns ``None`` if a processor discarded the event.
        """
        event.tags = merge_dicts(self.tags, event.tags)
        event.extra = merge_dicts(self.extra, event.extra)

        contexts = copy.deepcopy(self.contexts)
        contexts.update(event.contexts)
        event.contexts = contexts

        if self.user is not None:
            user = dict(self.user)
            user.update(event.user or {})
            event.user = user

        if self.level is not None and event.level is None:
            event.level = self.level

        if self.transaction is not None and event.transaction is None:
            event.transaction = self.transaction

        if self.fingerprint and not event.fingerprint:
            event.fingerprint = list(self.fingerprint)

        if not event.breadcrumbs:
            breadcrumbs = self.breadcrumbs.get_buffer()
            if options is not None:
                if options.max_breadcrumbs <= 0:
                    breadcrumbs = []
                else:
                    breadcrumbs = breadcrumbs[-options.max_breadcrumbs:]
            event.breadcrumbs = breadcrumbs

        if hint is None:
            hint = EventHint()

        for processor in chain(_global_event_processors, self.event_processors):
            event = processor(event, hint)
            if event is None:
                return None
            if not isinstance(event, Event):
                raise TypeError(
                    'The event processor %r must return either None or an '
                    'Event, got %r' % (processor, type(event).__name__))

        return event


@contextmanager
def push_scope(scope=None):
    """
    Yields a disposable fork of ``scope`` (or a fresh scope).
    """
    if scope is None:
        yield Scope()
    else:
        yield scope.fork()


def with_scope(scope, callback):
    """
    Calls ``callback`` with a disposable fork of ``scope`` and returns its
    result.
    """
    with push_scope(scope) as forked:
        return callback(forked)
