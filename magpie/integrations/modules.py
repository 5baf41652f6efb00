"""
magpie.integrations.modules
~~~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
from magpie.context import add_global_event_processor
from magpie.integrations import Integration
from magpie.utils import get_installed_versions


class ModulesIntegration(Integration):
    """
    Lists the installed distributions and their versions on the event.
    """

    def setup_once(self):
        integration_cls = type(self)

        def process_event(event, hint):
            if not integration_cls.is_enabled():
                return event

            if not event.modules:
                event.modules = get_installed_versions()

            return event

        add_global_event_processor(process_event, key=integration_cls)
