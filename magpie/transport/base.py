"""
magpie.transport.base
~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import enum

__all__ = ('Result', 'ResultStatus', 'Transport', 'NullTransport')


class ResultStatus(enum.Enum):
    UNKNOWN = 'unknown'
    SUCCESS = 'success'
    FAILED = 'failed'
    INVALID = 'invalid'
    SKIPPED = 'skipped'
    RATE_LIMIT = 'rate_limit'

    def __str__(self):
        return self.value

    @classmethod
    def from_http_status(cls, status_code):
        if 200 <= status_code < 300:
            return cls.SUCCESS
        if status_code == 429:
            return cls.RATE_LIMIT
        if 400 <= status_code < 500:
            return cls.INVALID
        if status_code >= 500:
            return cls.FAILED
        return cls.UNKNOWN


class Result(object):
    """
    The outcome of sending an event (or of draining a transport). The
    event is the one the transport actually dealt with.
    """

    def __init__(self, status, event=None):
        self.status = status
        self.event = event

    def __bool__(self):
        return self.status is ResultStatus.SUCCESS

    def __repr__(self):
        return '<%s: %s>' % (type(self).__name__, self.status)


class Transport(object):
    """
    All transport implementations need to subclass this class and
    implement ``send``. Transports which buffer events should also
    implement ``close`` so that it waits for them to be sent.
    """

    def send(self, event):
        """
        Sends ``event`` and returns a :class:`Result`.
        """
        raise NotImplementedError

    def close(self, timeout=None):
        """
        Waits up to ``timeout`` seconds for pending events to be sent.
        """
        return Result(ResultStatus.SUCCESS)


class NullTransport(Transport):
    """Sends events into an empty void"""

    def send(self, event):
        return Result(ResultStatus.SKIPPED, event)
