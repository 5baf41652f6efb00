"""
magpie.utils.serializer
~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
from itertools import islice

from magpie.utils.encoding import to_unicode

__all__ = ('VarsSerializer',)

logger = logging.getLogger('magpie.errors.serializer')

MAX_DEPTH = 6


class VarsSerializer(object):
    """
    Renders frame locals as JSON safe values.

    Strings keep their quotes so ``'1'`` and ``1`` can be told apart, and
    anything which is not a container or a number is sent as its ``repr``.

    >>> serialize = VarsSerializer(string_max_length=3, list_max_length=2)
    >>> serialize({'text': 'abcdef', 'items': [1, 2, 3]})
    {'text': "'abc'", 'items': [1, 2]}
    """

    def __init__(self, string_max_length=None, list_max_length=None,
                 max_depth=MAX_DEPTH):
        self.string_max_length = string_max_length
        self.list_max_length = list_max_length or None
        self.max_depth = max_depth

    def __call__(self, value):
        return self.serialize(value, 0, set())

    def serialize(self, value, depth, seen):
        if depth >= self.max_depth:
            value = self.safe_repr(value)

        if value is None or isinstance(value, (bool, int, float)):
            return value

        if isinstance(value, (str, bytes)):
            return repr(value[:self.string_max_length])

        objid = id(value)
        if objid in seen:
            return '<...>'
        seen.add(objid)

        try:
            if isinstance(value, dict):
                items = islice(value.items(), self.list_max_length)
                return dict(
                    (self.make_key(k), self.serialize(v, depth + 1, seen))
                    for k, v in items
                )
            if isinstance(value, (tuple, list, set, frozenset)):
                return [
                    self.serialize(o, depth + 1, seen)
                    for o in islice(value, self.list_max_length)
                ]
            return self.serialize(self.safe_repr(value), depth, seen)
        finally:
            seen.discard(objid)

    def make_key(self, key):
        if not isinstance(key, str):
            return to_unicode(key)
        return key

    def safe_repr(self, value):
        try:
            return repr(value)
        except Exception:
            # A model's __repr__ may query a database which went away
            logger.exception('Unable to represent a value of %s', type(value))
            return str(type(value))
