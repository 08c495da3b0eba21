import pytest

from flashstudy.controllers import AppController
from flashstudy.local_storage import LocalStorage


class ManualTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class ManualTimers:
    def __init__(self):
        self.created = []

    def __call__(self, delay, function):
        timer = ManualTimer(delay, function)
        self.created.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in list(self.created):
            timer.fire()


@pytest.fixture
def storage():
    return LocalStorage()


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def app_controller(storage, timers):
    return AppController(storage, auth_latency=0, auto_save_delay=0.3, timer_factory=timers)
