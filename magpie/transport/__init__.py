"""
magpie.transport
~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
from magpie.transport.base import Transport, NullTransport, Result, ResultStatus  # NOQA
from magpie.transport.http import HTTPTransport, RateLimiter  # NOQA
from magpie.transport.threaded import ThreadedHTTPTransport  # NOQA
