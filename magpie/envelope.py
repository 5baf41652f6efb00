"""
magpie.envelope
~~~~~~~~~~~~~~~

Renders events into the envelope wire format: a JSON header line followed
by one or more items, each made of a JSON item header line and a payload.

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import re
from datetime import datetime, timezone

from magpie.events import DynamicSamplingContext, EventType, Profile
from magpie.utils import json

__all__ = ('PayloadSerializer',)

PLATFORM_NAME = 'python'

_metric_key_re = re.compile(r'[^\w\-.]+')
_metric_tag_key_re = re.compile(r'[^\w\-./]+')
_metric_tag_value_re = re.compile(r'[\n\r\t\\|,]')


def frame_to_payload(frame):
    result = {
        'filename': frame.filename,
        'lineno': frame.lineno,
        'in_app': frame.in_app,
        'function': frame.function,
    }
    if frame.abs_path is not None:
        result['abs_path'] = frame.abs_path
    if frame.module is not None:
        result['module'] = frame.module
    if frame.context_line is not None:
        result.update({
            'pre_context': frame.pre_context,
            'context_line': frame.context_line,
            'post_context': frame.post_context,
        })
    if frame.vars:
        result['vars'] = frame.vars
    return result


def stacktrace_to_payload(stacktrace):
    return {'frames': [frame_to_payload(f) for f in stacktrace.frames]}


def exception_to_payload(exception):
    result = {
        'type': exception.type,
        'value': exception.value,
    }
    if exception.module and exception.module != 'builtins':
        result['module'] = exception.module
    if exception.stacktrace is not None:
        result['stacktrace'] = stacktrace_to_payload(exception.stacktrace)
    if exception.mechanism is not None:
        result['mechanism'] = {
            'type': exception.mechanism.type,
            'handled': exception.mechanism.handled,
        }
        if exception.mechanism.data:
            result['mechanism']['data'] = exception.mechanism.data
    return result


def event_to_payload(event):
    result = {
        'event_id': str(event.id),
        'timestamp': event.timestamp,
        'platform': PLATFORM_NAME,
        'sdk': {
            'name': event.sdk_identifier,
            'version': event.sdk_version,
        },
    }

    for key in ('level', 'logger', 'transaction', 'server_name', 'release',
                'environment'):
        value = getattr(event, key)
        if value is not None:
            result[key] = str(value)

    for key in ('fingerprint', 'modules', 'extra', 'tags', 'user', 'contexts'):
        value = getattr(event, key)
        if value:
            result[key] = value

    if event.breadcrumbs:
        result['breadcrumbs'] = {'values': event.breadcrumbs}

    if event.message is not None:
        if not event.message_params and event.message_formatted is None:
            result['message'] = event.message
        else:
            result['message'] = {
                'message': event.message,
                'params': list(event.message_params),
                'formatted': event.message_formatted or event.message,
            }

    if event.exceptions:
        # The ingestion side expects the oldest exception of the chain first
        result['exception'] = {
            'values': [exception_to_payload(e) for e in reversed(event.exceptions)],
        }

    if event.stacktrace is not None:
        result['stacktrace'] = stacktrace_to_payload(event.stacktrace)

    return result


def to_item(item_type, payload):
    header = {'type': item_type, 'content_type': 'application/json'}
    return '%s\n%s' % (json.dumps(header), json.dumps(payload))


def event_item(event):
    return to_item('event', event_to_payload(event))


def transaction_item(event):
    payload = event_to_payload(event)
    payload['type'] = 'transaction'
    payload['start_timestamp'] = event.start_timestamp or event.timestamp
    payload['spans'] = []
    return to_item('transaction', payload)


def profile_item(event):
    profile = event.get_sdk_metadata('profile')
    if isinstance(profile, Profile):
        data = profile.get_formatted_data()
    else:
        data = profile or None
    if not data:
        return ''
    return to_item('profile', data)


def check_in_item(event):
    check_in = event.check_in
    payload = {}
    if check_in is not None:
        payload = {
            'check_in_id': check_in.check_in_id,
            'monitor_slug': check_in.monitor_slug,
            'status': str(check_in.status),
            'release': check_in.release or event.release,
            'environment': check_in.environment or event.environment,
        }
        if check_in.duration is not None:
            payload['duration'] = check_in.duration
        if check_in.monitor_config:
            payload['monitor_config'] = check_in.monitor_config
    return to_item('check_in', payload)


def metric_to_statsd(metric):
    line = '%s@%s:%s|%s' % (
        _metric_key_re.sub('_', metric.key),
        metric.unit or 'none',
        ':'.join(str(v) for v in metric.values),
        metric.type,
    )
    if metric.tags:
        line += '|#' + ','.join(
            '%s:%s' % (_metric_tag_key_re.sub('', str(k)),
                       _metric_tag_value_re.sub('', str(v)))
            for k, v in sorted(metric.tags.items()))
    line += '|T%d' % metric.timestamp
    return line


def metrics_item(event):
    body = '\n'.join(metric_to_statsd(m) for m in event.metrics)
    header = {'type': 'statsd', 'length': len(body.encode('utf-8'))}
    return '%s\n%s' % (json.dumps(header), body)


class PayloadSerializer(object):
    """
    Serializes an event into an envelope ready to be sent off.

    >>> serializer = PayloadSerializer(options)
    >>> body = serializer.serialize(event)
    """

    def __init__(self, options):
        self.options = options

    def get_envelope_header(self, event):
        header = {
            'event_id': str(event.id),
            'sent_at': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
            'dsn': str(self.options.dsn) if self.options.dsn is not None else '',
            'sdk': {
                'name': event.sdk_identifier,
                'version': event.sdk_version,
            },
        }

        dynamic_sampling_context = event.get_sdk_metadata('dynamic_sampling_context')
        if isinstance(dynamic_sampling_context, DynamicSamplingContext):
            entries = dynamic_sampling_context.get_entries()
            if entries:
                header['trace'] = entries

        return header

    def serialize(self, event):
        if event.type is EventType.EVENT:
            items = event_item(event)
        elif event.type is EventType.TRANSACTION:
            items = transaction_item(event)
            if event.get_sdk_metadata('profile') is not None:
                profile = profile_item(event)
                if profile:
                    items = '%s\n%s' % (items, profile)
        elif event.type is EventType.CHECK_IN:
            items = check_in_item(event)
        elif event.type is EventType.METRICS:
            items = metrics_item(event)
        else:
            raise ValueError('Unknown event type: %r' % event.type)

        return '%s\n%s' % (json.dumps(self.get_envelope_header(event)), items)
