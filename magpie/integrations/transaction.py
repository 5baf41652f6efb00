"""
magpie.integrations.transaction
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import os

from magpie.context import add_global_event_processor
from magpie.integrations import Integration


class TransactionIntegration(Integration):
    """
    Sets the ``transaction`` of the event to the value passed in the hint
    extras, or to the ``PATH_INFO`` environment variable when running as
    a CGI script.
    """

    def setup_once(self):
        integration_cls = type(self)

        def process_event(event, hint):
            # The client bound to the current hub may not have this
            # integration enabled
            if not integration_cls.is_enabled():
                return event

            if event.transaction is not None:
                return event

            transaction = hint.extra.get('transaction') if hint is not None else None
            if isinstance(transaction, str):
                event.transaction = transaction
            elif os.environ.get('PATH_INFO'):
                event.transaction = os.environ['PATH_INFO']

            return event

        add_global_event_processor(process_event, key=integration_cls)
