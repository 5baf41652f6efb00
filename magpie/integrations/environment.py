"""
magpie.integrations.environment
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import platform
import sys

from magpie.context import add_global_event_processor
from magpie.integrations import Integration


def get_runtime_context():
    return {
        'name': platform.python_implementation(),
        'version': platform.python_version(),
        'build': sys.version,
    }


def get_os_context():
    return {
        'name': platform.system(),
        'version': platform.release(),
        'kernel_version': platform.version(),
    }


class EnvironmentIntegration(Integration):
    """
    Adds the ``runtime`` and ``os`` contexts to the event.
    """

    def setup_once(self):
        integration_cls = type(self)

        def process_event(event, hint):
            if not integration_cls.is_enabled():
                return event

            for name, get_context in (('runtime', get_runtime_context),
                                      ('os', get_os_context)):
                context = get_context()
                context.update(event.contexts.get(name) or {})
                event.contexts[name] = context

            return event

        add_global_event_processor(process_event, key=integration_cls)
