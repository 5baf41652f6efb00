"""
magpie.utils
~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging

from importlib import metadata as importlib_metadata

logger = logging.getLogger('magpie.errors')


def merge_dicts(*dicts):
    out = {}
    for d in dicts:
        if not d:
            continue

        for k, v in d.items():
            out[k] = v
    return out


# We store the name->version mapping of installed distributions to avoid
# walking site-packages for every event
_VERSION_CACHE = {}


def get_installed_versions():
    if _VERSION_CACHE:
        return dict(_VERSION_CACHE)

    for dist in importlib_metadata.distributions():
        try:
            name = dist.metadata['Name']
            version = dist.version
        except Exception as e:
            logger.exception(e)
            continue
        if name and version:
            _VERSION_CACHE[name.lower()] = version
    return dict(_VERSION_CACHE)


def get_auth_header(protocol, client, api_key, api_secret=None,
                    timestamp=None):
    header = [
        ('sentry_version', protocol),
        ('sentry_client', client),
        ('sentry_key', api_key),
    ]
    if timestamp is not None:
        header.insert(0, ('sentry_timestamp', timestamp))
    if api_secret:
        header.append(('sentry_secret', api_secret))

    return 'Sentry %s' % ', '.join('%s=%s' % (k, v) for k, v in header)
