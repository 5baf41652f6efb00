"""
magpie.integrations.frame_contextifier
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
from magpie.context import add_global_event_processor
from magpie.integrations import OptionAwareIntegration
from magpie.utils.stacks import get_lines_from_file


def add_context_to_stacktrace(stacktrace, context_lines):
    for frame in stacktrace.frames:
        if frame.context_line is not None:
            continue
        if not frame.abs_path or not frame.lineno:
            continue

        pre_context, context_line, post_context = get_lines_from_file(
            frame.abs_path, frame.lineno - 1, context_lines)
        if context_line is None:
            continue

        frame.pre_context = pre_context
        frame.context_line = context_line
        frame.post_context = post_context


class FrameContextifierIntegration(OptionAwareIntegration):
    """
    Reads the source code around each frame of the event's stacktraces.
    """

    def setup_once(self):
        from magpie.hub import Hub

        integration_cls = type(self)

        def process_event(event, hint):
            integration = Hub.current.get_integration(integration_cls)
            if integration is None:
                return event

            context_lines = integration.options.context_lines if integration.options else 0
            if context_lines <= 0:
                return event

            if event.stacktrace is not None:
                add_context_to_stacktrace(event.stacktrace, context_lines)

            for exception in event.exceptions:
                if exception.stacktrace is not None:
                    add_context_to_stacktrace(exception.stacktrace, context_lines)

            return event

        add_global_event_processor(process_event, key=integration_cls)
