"""
magpie
~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""

__all__ = ('VERSION', 'Client', 'Options', 'Dsn', 'Hub', 'init',
           'capture_message', 'capture_exception', 'capture_event',
           'capture_last_error', 'add_breadcrumb', 'configure_scope',
           'with_scope', 'push_scope', 'flush')

VERSION = '1.0.0'

from magpie.base import *  # NOQA
from magpie.conf import *  # NOQA
from magpie.hub import *  # NOQA
