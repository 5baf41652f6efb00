import sys
import threading

import pytest

from magpie import hub
from magpie.context import clear_global_event_processors


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """
    Every test starts with an empty main hub, no global event processors
    and the interpreter hooks as they were.
    """
    monkeypatch.setattr(hub, '_main_hub', hub.Hub())
    monkeypatch.setattr(sys, 'excepthook', sys.excepthook)
    monkeypatch.setattr(threading, 'excepthook', threading.excepthook)
    for name in ('SENTRY_DSN', 'SENTRY_RELEASE', 'SENTRY_ENVIRONMENT'):
        monkeypatch.delenv(name, raising=False)
    clear_global_event_processors()
    yield
    clear_global_event_processors()
