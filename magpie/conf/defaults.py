"""
magpie.conf.defaults
~~~~~~~~~~~~~~~~~~~~

Represents the default values for all client options.

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import socket

# Not all environments have access to socket module, for example Google App Engine
# Need to check to see if the socket module has ``gethostname``, if it doesn't we
# will set it to None and require it passed in to ``Options`` on initialization.
NAME = socket.gethostname() if hasattr(socket, 'gethostname') else None

# Used when neither the event nor the options carry an environment.
ENVIRONMENT = 'production'

# Fraction of error events which are sent. 1.0 sends everything.
SAMPLE_RATE = 1.0

# The maximum number of elements to store for a list-like structure.
MAX_LENGTH_LIST = 50

# The maximum length to store of a string-like structure.
MAX_LENGTH_STRING = 400

# Number of source lines captured on each side of a frame's line.
CONTEXT_LINES = 5

MAX_BREADCRUMBS = 100

# Seconds the threaded transport waits for pending events on shutdown.
SHUTDOWN_TIMEOUT = 2

# Seconds before an HTTP request to the ingestion endpoint is abandoned.
HTTP_TIMEOUT = 5

# Attach a stack trace to events without one (messages, mostly).
ATTACH_STACKTRACE = False
