"""
magpie.utils.encoding
~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""


def force_text(s, encoding='utf-8', errors='replace'):
    """
    Similar to smart_text, except that lazy instances are resolved to
    strings, rather than kept as lazy objects.

    Adapted from Django
    """
    if isinstance(s, str):
        return s
    if isinstance(s, (bytes, bytearray)):
        return bytes(s).decode(encoding, errors)
    try:
        return str(s)
    except UnicodeError:
        if not isinstance(s, BaseException):
            raise
        # If we get to here, the caller has passed in an Exception
        # subclass populated with undecodable data. We do an
        # approximation to what the Exception's standard str()
        # output should be.
        return ' '.join(force_text(arg, encoding, errors) for arg in s.args)


def to_unicode(value):
    try:
        value = force_text(value)
    except (UnicodeEncodeError, UnicodeDecodeError):
        value = '(Error decoding value)'
    except Exception:  # in some cases we get a different exception
        try:
            value = str(repr(type(value)))
        except Exception:
            value = '(Error decoding value)'
    return value


def to_string(value):
    if isinstance(value, bytes):
        return value.decode('utf-8', 'replace')
    return to_unicode(value)
