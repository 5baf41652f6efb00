"""
magpie.transport.http
~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import threading
import time

import requests

from magpie.envelope import PayloadSerializer
from magpie.events import EventType
from magpie.transport.base import Result, ResultStatus, Transport

logger = logging.getLogger('magpie.errors')

DEFAULT_RETRY_AFTER = 60

# Rate limit categories reported by the server for each event type
RATE_LIMIT_CATEGORIES = {
    EventType.EVENT: 'error',
    EventType.TRANSACTION: 'transaction',
    EventType.CHECK_IN: 'monitor',
    EventType.METRICS: 'metric_bucket',
}


class RateLimiter(object):
    """
    Remembers for how long the server asked us to stop sending events,
    either globally or per category.
    """

    def __init__(self):
        self._disabled_until = {}
        self._lock = threading.Lock()

    def is_rate_limited(self, event_type, now=None):
        if now is None:
            now = time.time()
        category = RATE_LIMIT_CATEGORIES.get(event_type)
        with self._lock:
            until = max(self._disabled_until.get(None, 0),
                        self._disabled_until.get(category, 0))
        return until > now

    def get_disabled_until(self, event_type):
        category = RATE_LIMIT_CATEGORIES.get(event_type)
        with self._lock:
            return max(self._disabled_until.get(None, 0),
                       self._disabled_until.get(category, 0))

    def handle_response(self, response, now=None):
        if now is None:
            now = time.time()

        rate_limits = response.headers.get('X-Sentry-Rate-Limits')
        if rate_limits:
            for limit in rate_limits.split(','):
                bits = limit.strip().split(':')
                try:
                    retry_after = float(bits[0])
                except ValueError:
                    retry_after = DEFAULT_RETRY_AFTER
                categories = bits[1].split(';') if len(bits) > 1 and bits[1] else [None]
                for category in categories:
                    self._disable(category or None, now + retry_after)
            return True

        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After')
            try:
                retry_after = float(retry_after)
            except (TypeError, ValueError):
                retry_after = DEFAULT_RETRY_AFTER
            self._disable(None, now + retry_after)
            return True

        return False

    def _disable(self, category, until):
        with self._lock:
            if until > self._disabled_until.get(category, 0):
                self._disabled_until[category] = until
                logger.warning('Rate limited by the server until %s (category: %s)',
                               until, category or 'all')


class HTTPTransport(Transport):
    """
    Posts envelopes to the endpoint of the configured DSN.
    """

    def __init__(self, options, serializer=None, session=None):
        self.options = options
        self.serializer = serializer or PayloadSerializer(options)
        self.session = session or requests.Session()
        self.rate_limiter = RateLimiter()

    def get_headers(self, event):
        client_string = '%s/%s' % (event.sdk_identifier, event.sdk_version)
        return {
            'User-Agent': client_string,
            'X-Sentry-Auth': self.options.dsn.get_auth_header(client_string),
            'Content-Type': 'application/x-sentry-envelope',
        }

    def send(self, event):
        dsn = self.options.dsn
        if dsn is None:
            return Result(ResultStatus.SKIPPED, event)

        if self.rate_limiter.is_rate_limited(event.type):
            logger.warning('The %s will be discarded because it has been rate limited.',
                           event.get_description())
            return Result(ResultStatus.RATE_LIMIT)

        url = dsn.get_envelope_api_endpoint_url()
        data = self.serializer.serialize(event).encode('utf-8')

        logger.debug('Sending envelope of length %d to %s', len(data), url)

        try:
            response = self.session.post(
                url, data=data, headers=self.get_headers(event),
                timeout=self.options.http_timeout)
        except requests.RequestException as e:
            logger.error('Failed to send the event to Sentry. Reason: "%s".', e,
                         exc_info=True, extra={'data': {'remote_url': url}})
            return Result(ResultStatus.FAILED)

        self.rate_limiter.handle_response(response)

        status = ResultStatus.from_http_status(response.status_code)
        if status is not ResultStatus.SUCCESS:
            logger.error('Unable to reach Sentry server: %s (url: %s, body: %s)',
                         response.status_code, url, response.text[:200])
            return Result(status)
        return Result(status, event)
