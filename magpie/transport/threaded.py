"""
magpie.transport.threaded
~~~~~~~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import atexit
import logging
import os
import sys
import threading
import time
from queue import Full, Queue

from magpie.conf import defaults
from magpie.transport.base import Result, ResultStatus
from magpie.transport.http import HTTPTransport

DEFAULT_QUEUE_SIZE = 100

logger = logging.getLogger('magpie.errors')


class AsyncWorker(object):
    _terminator = object()

    def __init__(self, shutdown_timeout=defaults.SHUTDOWN_TIMEOUT,
                 queue_size=DEFAULT_QUEUE_SIZE):
        self._queue = Queue(queue_size)
        self._lock = threading.Lock()
        self._thread = None
        self._thread_for_pid = None
        self.options = {
            'shutdown_timeout': shutdown_timeout,
        }
        self.start()

    def is_alive(self):
        if self._thread_for_pid != os.getpid():
            return False
        return self._thread is not None and self._thread.is_alive()

    def _ensure_thread(self):
        if self.is_alive():
            return
        self.start()

    def main_thread_terminated(self):
        with self._lock:
            if not self.is_alive():
                # thread not started or already stopped - nothing to do
                return

            size = self._queue.qsize()
            if size:
                timeout = self.options['shutdown_timeout']
                print("magpie is attempting to send %i pending error messages" % size,
                      file=sys.stderr)
                print("Waiting up to %s seconds" % timeout, file=sys.stderr)
                if os.name == 'nt':
                    print("Press Ctrl-Break to quit", file=sys.stderr)
                else:
                    print("Press Ctrl-C to quit", file=sys.stderr)

        self.stop(timeout=self.options['shutdown_timeout'])

    def start(self):
        """
        Starts the task thread.
        """
        with self._lock:
            if not self.is_alive():
                self._thread = threading.Thread(
                    target=self._target, name="magpie.AsyncWorker")
                self._thread.daemon = True
                self._thread.start()
                self._thread_for_pid = os.getpid()
        atexit.register(self.main_thread_terminated)

    def stop(self, timeout=None):
        """
        Stops the task thread. Synchronous!
        """
        with self._lock:
            if self._thread:
                try:
                    self._queue.put(self._terminator, timeout=timeout)
                except Full:
                    logger.warning('Could not stop the worker, its queue is full')
                self._thread.join(timeout=timeout)
                self._thread = None
                self._thread_for_pid = None

    def queue(self, callback, *args, **kwargs):
        self._ensure_thread()
        self._queue.put_nowait((callback, args, kwargs))

    def flush(self, timeout=None):
        """
        Waits until every queued job has been processed. Returns ``False``
        if ``timeout`` seconds elapsed first.
        """
        deadline = None if timeout is None else time.time() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.time()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def _target(self):
        while True:
            record = self._queue.get()
            try:
                if record is self._terminator:
                    break
                callback, args, kwargs = record
                try:
                    callback(*args, **kwargs)
                except Exception:
                    logger.error('Failed processing job', exc_info=True)
            finally:
                self._queue.task_done()

            time.sleep(0)


class ThreadedHTTPTransport(HTTPTransport):
    """
    Sends envelopes from a background thread. ``send`` returns as soon as
    the event is queued.
    """

    def __init__(self, options, serializer=None, session=None,
                 queue_size=DEFAULT_QUEUE_SIZE):
        super(ThreadedHTTPTransport, self).__init__(
            options, serializer=serializer, session=session)
        self.queue_size = queue_size
        self._worker = None

    def get_worker(self):
        if self._worker is None:
            self._worker = AsyncWorker(
                shutdown_timeout=self.options.shutdown_timeout,
                queue_size=self.queue_size)
        return self._worker

    def send_sync(self, event):
        return super(ThreadedHTTPTransport, self).send(event)

    def send(self, event):
        try:
            self.get_worker().queue(self.send_sync, event)
        except Full:
            logger.warning('The %s will be discarded because the queue is full.',
                           event.get_description())
            return Result(ResultStatus.SKIPPED)
        return Result(ResultStatus.SUCCESS, event)

    def close(self, timeout=None):
        if self._worker is None:
            return Result(ResultStatus.SUCCESS)
        if self._worker.flush(timeout):
            return Result(ResultStatus.SUCCESS)
        return Result(ResultStatus.FAILED)
