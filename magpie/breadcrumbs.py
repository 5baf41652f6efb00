"""
magpie.breadcrumbs
~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import time

from magpie.conf import defaults

logger = logging.getLogger('magpie')


def event_payload_considered_equal(a, b):
    return (
        a['type'] == b['type'] and
        a['level'] == b['level'] and
        a['message'] == b['message'] and
        a['category'] == b['category'] and
        a['data'] == b['data']
    )


class BreadcrumbBuffer(object):
    """
    Keeps the most recent ``limit`` breadcrumbs. Payload processors run
    lazily the first time the buffer is read.
    """

    def __init__(self, limit=defaults.MAX_BREADCRUMBS):
        self.buffer = []
        self.limit = limit

    def record(self, timestamp=None, level=None, message=None,
               category=None, data=None, type=None, processor=None):
        if not (message or data or processor):
            raise ValueError('You must pass either `message`, `data`, '
                             'or `processor`')
        if timestamp is None:
            timestamp = time.time()
        self.buffer.append(({
            'type': type or 'default',
            'timestamp': timestamp,
            'level': str(level) if level is not None else None,
            'message': message,
            'category': category,
            'data': data,
        }, processor))
        if self.limit <= 0:
            del self.buffer[:]
        else:
            del self.buffer[:-self.limit]

    def clear(self):
        del self.buffer[:]

    def copy(self):
        rv = type(self)(self.limit)
        rv.buffer = list(self.buffer)
        return rv

    def __len__(self):
        return len(self.buffer)

    def get_buffer(self):
        rv = []
        for idx, (payload, processor) in enumerate(self.buffer):
            if processor is not None:
                try:
                    processor(payload)
                except Exception:
                    logger.exception('Failed to process breadcrumbs. Ignored')
                    payload = None
                self.buffer[idx] = (payload, None)
            if payload is not None and \
               (not rv or not event_payload_considered_equal(rv[-1], payload)):
                rv.append(payload)
        return rv
