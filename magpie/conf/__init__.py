"""
magpie.conf
~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import os
from types import MappingProxyType
from urllib.parse import parse_qsl, urlparse

from magpie.conf import defaults
from magpie.exceptions import InvalidDsn
from magpie.utils import get_auth_header

__all__ = ('Dsn', 'Options', 'setup_logging')

PROTOCOL_VERSION = '7'

EXCLUDE_LOGGER_DEFAULTS = (
    'magpie',
    'magpie.errors',
    'urllib3',
)

SUPPORTED_SCHEMES = ('http', 'https')


def _identity(event, hint=None):
    return event


class Dsn(object):
    """
    A parsed Data Source Name.

    >>> dsn = Dsn.from_string('https://public@example.com/42')
    >>> dsn.get_envelope_api_endpoint_url()
    'https://example.com/api/42/envelope/'
    """

    def __init__(self, scheme, host, port, path, project_id, public_key,
                 secret_key=None, options=None, raw=None):
        self.scheme = scheme
        self.host = host
        self.port = port
        self.path = path
        self.project_id = project_id
        self.public_key = public_key
        self.secret_key = secret_key
        self.options = options or {}
        self._raw = raw

    @classmethod
    def from_string(cls, value):
        url = urlparse(value)

        if url.scheme not in SUPPORTED_SCHEMES:
            raise InvalidDsn('Unsupported DSN scheme: %r' % url.scheme)

        try:
            port = url.port
        except ValueError:
            raise InvalidDsn('Invalid DSN port: %r' % value)

        path_bits = url.path.rsplit('/', 1)
        if len(path_bits) > 1:
            path = path_bits[0]
        else:
            path = ''
        project = path_bits[-1]

        if not all([url.hostname, project, url.username]):
            raise InvalidDsn('Invalid DSN: %r' % value)

        if not project.isdigit():
            raise InvalidDsn('Invalid DSN project id: %r' % project)

        return cls(
            scheme=url.scheme,
            host=url.hostname,
            port=port,
            path=path,
            project_id=project,
            public_key=url.username,
            secret_key=url.password,
            options=dict(parse_qsl(url.query)),
            raw=value,
        )

    @property
    def netloc(self):
        if self.port and (self.scheme, self.port) not in (('http', 80), ('https', 443)):
            return '%s:%s' % (self.host, self.port)
        return self.host

    def get_envelope_api_endpoint_url(self):
        return '%s://%s%s/api/%s/envelope/' % (
            self.scheme, self.netloc, self.path, self.project_id)

    def get_auth_header(self, client):
        return get_auth_header(
            protocol=PROTOCOL_VERSION,
            client=client,
            api_key=self.public_key,
            api_secret=self.secret_key,
        )

    def __eq__(self, other):
        return isinstance(other, Dsn) and str(self) == str(other)

    def __hash__(self):
        return hash(str(self))

    def __str__(self):
        if self._raw:
            return self._raw
        auth = self.public_key
        if self.secret_key:
            auth += ':' + self.secret_key
        return '%s://%s@%s%s/%s' % (
            self.scheme, auth, self.netloc, self.path, self.project_id)

    def __repr__(self):
        return '<%s: %s>' % (type(self).__name__, self)


class Options(object):
    """
    The client configuration. Values are validated once and cannot be
    changed afterwards; use :meth:`replace` to derive a modified copy.

    >>> options = Options(dsn='https://public@example.com/1', sample_rate=0.5)
    >>> options.sample_rate
    0.5
    """

    def __init__(self, **options):
        values = self.get_defaults()
        unknown = sorted(set(options) - set(values))
        if unknown:
            raise TypeError('Unknown option(s): %s' % ', '.join(unknown))
        values.update(options)
        object.__setattr__(self, '_values', self._normalize(values))
        object.__setattr__(self, '_raw', options)

    @staticmethod
    def get_defaults():
        return {
            'dsn': os.environ.get('SENTRY_DSN') or None,
            'sample_rate': defaults.SAMPLE_RATE,
            'ignore_exceptions': (),
            'ignore_transactions': (),
            'before_send': _identity,
            'before_send_transaction': _identity,
            'before_send_check_in': _identity,
            'before_send_metrics': _identity,
            'tags': {},
            'attach_stacktrace': defaults.ATTACH_STACKTRACE,
            'release': os.environ.get('SENTRY_RELEASE') or None,
            'environment': os.environ.get('SENTRY_ENVIRONMENT') or None,
            'server_name': defaults.NAME,
            'default_integrations': True,
            'integrations': [],
            'in_app_include': (),
            'in_app_exclude': (),
            'context_lines': defaults.CONTEXT_LINES,
            'max_breadcrumbs': defaults.MAX_BREADCRUMBS,
            'string_max_length': defaults.MAX_LENGTH_STRING,
            'list_max_length': defaults.MAX_LENGTH_LIST,
            'shutdown_timeout': defaults.SHUTDOWN_TIMEOUT,
            'http_timeout': defaults.HTTP_TIMEOUT,
        }

    @staticmethod
    def _normalize(values):
        dsn = values['dsn']
        if dsn is not None and not isinstance(dsn, Dsn):
            dsn = Dsn.from_string(dsn) if dsn else None
        values['dsn'] = dsn

        sample_rate = float(values['sample_rate'])
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError(
                'The "sample_rate" option must be between 0 and 1, got %r' % sample_rate)
        values['sample_rate'] = sample_rate

        for key in ('before_send', 'before_send_transaction',
                    'before_send_check_in', 'before_send_metrics'):
            if values[key] is None:
                values[key] = _identity
            elif not callable(values[key]):
                raise TypeError('The "%s" option must be callable' % key)

        integrations = values['integrations']
        if integrations is None:
            integrations = []
        if not callable(integrations):
            integrations = tuple(integrations)
        values['integrations'] = integrations

        for key in ('ignore_exceptions', 'ignore_transactions',
                    'in_app_include', 'in_app_exclude'):
            values[key] = tuple(values[key] or ())

        values['tags'] = MappingProxyType(
            dict((k, str(v)) for k, v in (values['tags'] or {}).items()))

        for key in ('context_lines', 'max_breadcrumbs', 'string_max_length',
                    'list_max_length'):
            values[key] = int(values[key])

        values['attach_stacktrace'] = bool(values['attach_stacktrace'])
        values['default_integrations'] = bool(values['default_integrations'])

        return values

    def __getattr__(self, name):
        try:
            return self.__dict__['_values'][name]
        except KeyError:
            raise AttributeError(name)

    def __setattr__(self, name, value):
        raise AttributeError('%s is read-only' % type(self).__name__)

    def __delattr__(self, name):
        raise AttributeError('%s is read-only' % type(self).__name__)

    def __repr__(self):
        return '<%s: dsn=%r>' % (type(self).__name__, str(self.dsn) if self.dsn else None)

    def replace(self, **overrides):
        """
        Returns a new ``Options`` built from the arguments of this one,
        updated with ``overrides``.
        """
        options = dict(self._raw)
        options.update(overrides)
        return type(self)(**options)

    def has_default_integrations(self):
        return self.default_integrations

    def should_attach_stacktrace(self):
        return self.attach_stacktrace


def setup_logging(handler, exclude=EXCLUDE_LOGGER_DEFAULTS):
    """
    Configures logging to pipe to the error tracker.

    - ``exclude`` is a list of loggers that shouldn't be reported.

    >>> from magpie.handlers.logging import MagpieHandler
    >>> client = Client(...)
    >>> setup_logging(MagpieHandler(client))

    Returns a boolean based on if logging was configured or not.
    """
    logger = logging.getLogger()
    if handler.__class__ in map(type, logger.handlers):
        return False

    logger.addHandler(handler)

    # Add StreamHandler to magpie's default so you can catch missed exceptions
    for logger_name in exclude:
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        logger.addHandler(logging.StreamHandler())

    return True
