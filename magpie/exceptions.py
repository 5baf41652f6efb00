"""
magpie.exceptions
~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""


class MagpieError(Exception):
    pass


class InvalidDsn(MagpieError, ValueError):
    pass


class ConfigurationError(MagpieError):
    """
    Raised when the client configuration is broken in a way that can only
    be fixed by the programmer, e.g. an ``integrations`` callback which
    does not return a list.
    """
