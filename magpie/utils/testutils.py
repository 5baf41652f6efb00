"""
magpie.utils.testutils
~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2013 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
from exam import Exam

from unittest import TestCase as BaseTestCase

from magpie.transport.base import Result, ResultStatus, Transport


class TestCase(Exam, BaseTestCase):
    pass


class InMemoryTransport(Transport):
    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)
        return Result(ResultStatus.SUCCESS, event)
