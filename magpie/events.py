"""
magpie.events
~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import enum
import logging
import re
import time
import uuid

from magpie.conf import defaults
from magpie.utils.encoding import to_unicode

__all__ = ('Event', 'EventType', 'EventId', 'EventHint', 'Severity',
           'ExceptionDataBag', 'ExceptionMechanism', 'CheckIn',
           'CheckInStatus', 'Metric', 'DynamicSamplingContext', 'Profile')

DEFAULT_ENVIRONMENT = defaults.ENVIRONMENT

_event_id_re = re.compile(r'^[a-f0-9]{32}$')


class EventType(enum.Enum):
    EVENT = 'event'
    TRANSACTION = 'transaction'
    CHECK_IN = 'check_in'
    METRICS = 'metrics'

    def __str__(self):
        return self.value


class Severity(enum.Enum):
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'
    FATAL = 'fatal'

    def __str__(self):
        return self.value

    @classmethod
    def from_logging_level(cls, level):
        if level >= logging.CRITICAL:
            return cls.FATAL
        if level >= logging.ERROR:
            return cls.ERROR
        if level >= logging.WARNING:
            return cls.WARNING
        if level >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


class EventId(object):
    """
    A 32 character lowercase hex identifier.
    """

    def __init__(self, value):
        value = str(value).replace('-', '').lower()
        if not _event_id_re.match(value):
            raise ValueError('%r is not a valid event id' % value)
        self.value = value

    @classmethod
    def generate(cls):
        return cls(uuid.uuid4().hex)

    def __str__(self):
        return self.value

    def __repr__(self):
        return '<%s: %s>' % (type(self).__name__, self.value)

    def __eq__(self, other):
        if isinstance(other, EventId):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other
        return NotImplemented

    def __hash__(self):
        return hash(self.value)

    def __json__(self):
        return self.value


class ExceptionMechanism(object):
    TYPE_GENERIC = 'generic'

    def __init__(self, type, handled, data=None):
        self.type = type
        self.handled = handled
        self.data = dict(data or {})

    def __repr__(self):
        return '<%s: %s handled=%s>' % (type(self).__name__, self.type, self.handled)


class ExceptionDataBag(object):
    """
    Holds the information about a single exception of an event.
    """

    def __init__(self, exception, stacktrace=None, mechanism=None):
        exc_type = type(exception)
        self.exception_type = exc_type
        self.type = exc_type.__name__
        self.module = getattr(exc_type, '__module__', None)
        self.value = to_unicode(exception)
        self.stacktrace = stacktrace
        self.mechanism = mechanism

    @property
    def qualified_type(self):
        if self.module and self.module != 'builtins':
            return '%s.%s' % (self.module, self.type)
        return self.type


class EventHint(object):
    """
    Additional information about the event being captured. A hint lives
    for a single capture call.
    """

    def __init__(self, exception=None, mechanism=None, stacktrace=None,
                 extra=None):
        self.exception = exception
        self.mechanism = mechanism
        self.stacktrace = stacktrace
        self.extra = dict(extra or {})

    @classmethod
    def from_dict(cls, data):
        unknown = set(data) - set(('exception', 'mechanism', 'stacktrace', 'extra'))
        if unknown:
            raise TypeError('Unknown hint key(s): %s' % ', '.join(sorted(unknown)))
        return cls(**data)


class CheckInStatus(enum.Enum):
    OK = 'ok'
    ERROR = 'error'
    IN_PROGRESS = 'in_progress'

    def __str__(self):
        return self.value


class CheckIn(object):
    def __init__(self, monitor_slug, status, check_in_id=None, release=None,
                 environment=None, duration=None, monitor_config=None):
        self.monitor_slug = monitor_slug
        self.status = CheckInStatus(status)
        self.check_in_id = check_in_id or uuid.uuid4().hex
        self.release = release
        self.environment = environment
        self.duration = duration
        self.monitor_config = monitor_config


class Metric(object):
    """
    A single statsd-style measurement. ``type`` is one of ``c`` (counter),
    ``d`` (distribution), ``g`` (gauge) or ``s`` (set).
    """
    TYPES = ('c', 'd', 'g', 's')

    def __init__(self, key, values, type='c', unit='none', tags=None,
                 timestamp=None):
        if type not in self.TYPES:
            raise ValueError('Unknown metric type: %r' % type)
        if not isinstance(values, (list, tuple)):
            values = [values]
        self.key = key
        self.values = list(values)
        self.type = type
        self.unit = unit
        self.tags = dict(tags or {})
        self.timestamp = int(timestamp if timestamp is not None else time.time())


class DynamicSamplingContext(object):
    def __init__(self, entries=None):
        self._entries = dict(entries or {})

    def set(self, key, value):
        self._entries[key] = value

    def get(self, key, default=None):
        return self._entries.get(key, default)

    def get_entries(self):
        return dict(self._entries)

    def is_empty(self):
        return not self._entries


class Profile(object):
    """
    Opaque profiling data attached to a transaction.
    """

    def __init__(self, data=None):
        self.data = dict(data or {})

    def get_formatted_data(self):
        if not self.data:
            return None
        return self.data


class Event(object):
    """
    A single reportable occurrence. Use one of the ``create_*`` factories
    rather than the constructor.

    >>> event = Event.create_event()
    >>> event.set_message('Something happened')
    """

    def __init__(self, event_id=None, event_type=EventType.EVENT):
        self.id = EventId(event_id) if event_id else EventId.generate()
        self._type = EventType(event_type)
        self.timestamp = time.time()
        self.start_timestamp = None
        self.level = None
        self.logger = None
        self.message = None
        self.message_params = ()
        self.message_formatted = None
        self.exceptions = []
        self.stacktrace = None
        self.tags = {}
        self.extra = {}
        self.contexts = {}
        self.user = None
        self.breadcrumbs = []
        self.fingerprint = []
        self.modules = {}
        self.server_name = None
        self.release = None
        self.environment = None
        self.transaction = None
        self.check_in = None
        self.metrics = []
        self.sdk_identifier = None
        self.sdk_version = None
        self._sdk_metadata = {}

    @classmethod
    def create_event(cls, event_id=None):
        return cls(event_id, EventType.EVENT)

    @classmethod
    def create_transaction(cls, event_id=None):
        return cls(event_id, EventType.TRANSACTION)

    @classmethod
    def create_check_in(cls, event_id=None):
        return cls(event_id, EventType.CHECK_IN)

    @classmethod
    def create_metrics(cls, event_id=None):
        return cls(event_id, EventType.METRICS)

    @property
    def type(self):
        return self._type

    def __repr__(self):
        return '<%s: %s [%s]>' % (type(self).__name__, self._type, self.id)

    def get_description(self):
        if self.level is not None:
            return '%s %s [%s]' % (self.level, self._type, self.id)
        return '%s [%s]' % (self._type, self.id)

    def set_message(self, message, params=(), formatted=None):
        self.message = message
        self.message_params = tuple(params or ())
        self.message_formatted = formatted

    def set_tag(self, key, value):
        self.tags[key] = str(value)

    def remove_tag(self, key):
        self.tags.pop(key, None)

    def set_sdk_metadata(self, name, value):
        self._sdk_metadata[name] = value

    def get_sdk_metadata(self, name=None):
        if name is None:
            return dict(self._sdk_metadata)
        return self._sdk_metadata.get(name)
