"""
magpie.integrations
~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import logging
import threading
from collections import OrderedDict

from magpie.exceptions import ConfigurationError

__all__ = ('Integration', 'OptionAwareIntegration', 'IntegrationRegistry',
           'get_default_integrations')


class Integration(object):
    """
    All integrations need to subclass this class and implement
    ``setup_once``. The registry calls ``setup_once`` a single time per
    integration class, no matter how many clients are created.
    """

    def setup_once(self):
        raise NotImplementedError

    @classmethod
    def is_enabled(cls):
        """
        Returns whether the client bound to the current hub has this
        integration installed.
        """
        from magpie.hub import Hub
        return Hub.current.get_integration(cls) is not None

    def __repr__(self):
        return '<%s>' % type(self).__name__


class OptionAwareIntegration(Integration):
    """
    An integration which needs the client options. They are injected
    right before ``setup_once`` runs.
    """
    options = None

    def set_options(self, options):
        self.options = options


def get_default_integrations(options):
    if not options.has_default_integrations():
        return []

    from magpie.integrations.environment import EnvironmentIntegration
    from magpie.integrations.error_listener import (
        ExceptionListenerIntegration, ThreadExceptionListenerIntegration)
    from magpie.integrations.frame_contextifier import FrameContextifierIntegration
    from magpie.integrations.modules import ModulesIntegration
    from magpie.integrations.transaction import TransactionIntegration

    integrations = [
        TransactionIntegration(),
        FrameContextifierIntegration(),
        EnvironmentIntegration(),
        ModulesIntegration(),
    ]
    if options.dsn is not None:
        integrations[:0] = [
            ExceptionListenerIntegration(),
            ThreadExceptionListenerIntegration(),
        ]
    return integrations


class IntegrationRegistry(object):
    """
    Sets up integrations, making sure each integration class is only
    installed once for the lifetime of the registry.

    >>> registry = IntegrationRegistry()
    >>> integrations = registry.setup_integrations(options, logger)
    """

    def __init__(self):
        self._installed = set()
        self._lock = threading.RLock()

    def is_installed(self, integration_cls):
        return integration_cls in self._installed

    def setup_integrations(self, options, logger=None):
        if logger is None:
            logger = logging.getLogger('magpie')

        integrations = OrderedDict()
        installed = []
        for integration in self.get_integrations_to_setup(options):
            integration_cls = type(integration)
            integrations[integration_cls] = integration
            if self.setup_integration(integration, options):
                installed.append(integration_cls.__name__)

        if installed:
            logger.debug('The "%s" integration(s) have been installed.',
                         ', '.join(installed))

        return integrations

    def setup_integration(self, integration, options):
        integration_cls = type(integration)
        with self._lock:
            # Instances of already installed classes still get the options
            # of the client they belong to
            if isinstance(integration, OptionAwareIntegration) and integration.options is None:
                integration.set_options(options)

            if integration_cls in self._installed:
                return False

            integration.setup_once()
            self._installed.add(integration_cls)
        return True

    def get_integrations_to_setup(self, options):
        default_integrations = get_default_integrations(options)
        user_integrations = options.integrations

        if callable(user_integrations):
            integrations = user_integrations(default_integrations)
            if not isinstance(integrations, list):
                raise ConfigurationError(
                    'Expected the callback set for the "integrations" option '
                    'to return a list of integrations. Got: "%s".'
                    % type(integrations).__name__)
            return integrations

        integrations = []
        user_classes = set(type(i) for i in user_integrations)
        picked = set()
        for integration in default_integrations:
            integration_cls = type(integration)
            if integration_cls not in user_classes and integration_cls not in picked:
                integrations.append(integration)
                picked.add(integration_cls)

        for integration in user_integrations:
            integration_cls = type(integration)
            if integration_cls not in picked:
                integrations.append(integration)
                picked.add(integration_cls)

        return integrations
