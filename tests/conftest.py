"""
Shared fakes for driving ResilientConnection without a network
"""

import random

import pytest
import websocket

from transport import ConnectionCallbacks, ReconnectConfig, ResilientConnection


class FakeSocket:
    """Stands in for websocket.WebSocketApp; tests trigger its callbacks"""

    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent = []
        self.attempted = []
        self.failing_sends = 0
        self.closed = False

    def run_forever(self):
        pass

    def send(self, data, opcode=websocket.ABNF.OPCODE_TEXT):
        self.attempted.append(data)
        if self.failing_sends > 0:
            self.failing_sends -= 1
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        self.sent.append((data, opcode))

    def close(self):
        self.closed = True

    @property
    def sent_data(self):
        return [data for data, _ in self.sent]

    # Drivers
    def open(self):
        self.on_open(self)

    def receive(self, message):
        self.on_message(self, message)

    def error(self, exc=None):
        self.on_error(self, exc or ConnectionRefusedError("[Errno 111] Connection refused"))

    def drop(self, code=1006, msg="abnormal closure"):
        self.on_close(self, code, msg)


class FakeSocketFactory:
    def __init__(self):
        self.sockets = []
        self.fail_creation = False

    def __call__(self, url, **callbacks):
        if self.fail_creation:
            raise OSError("cannot create socket")
        sock = FakeSocket(url, **callbacks)
        self.sockets.append(sock)
        return sock

    @property
    def latest(self):
        return self.sockets[-1]


class ManualTimer:
    """threading.Timer look-alike that only fires when told to"""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Runs even when cancelled, to simulate a callback already in flight
        self.fired = True
        self.function(*self.args, **self.kwargs)

    @property
    def active(self):
        return self.started and not self.cancelled and not self.fired


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def _of(self, name):
        return [t for t in self.timers if t.function.__name__ == name]

    def reconnect_timers(self):
        return self._of("_on_reconnect_timer")

    def connect_timers(self):
        return self._of("_on_connect_timeout")

    def active_reconnect_timers(self):
        return [t for t in self.reconnect_timers() if t.active]


class Recorder:
    """Collects every callback invocation in order"""

    def __init__(self):
        self.calls = []

    def callbacks(self):
        return ConnectionCallbacks(
            on_connect=lambda: self.calls.append(("connect", None)),
            on_disconnect=lambda: self.calls.append(("disconnect", None)),
            on_error=lambda info: self.calls.append(("error", info)),
            on_reconnecting=lambda info: self.calls.append(("reconnecting", info)),
            on_message=lambda payload: self.calls.append(("message", payload)),
        )

    def of(self, kind):
        return [arg for name, arg in self.calls if name == kind]


@pytest.fixture
def sockets():
    return FakeSocketFactory()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_connection(sockets, timers, recorder):
    created = []

    def factory(config=None, **kwargs):
        kwargs.setdefault("callbacks", recorder.callbacks())
        conn = ResilientConnection(
            "ws://localhost:8765/ws",
            config=config or ReconnectConfig(max_attempts=3, initial_delay=0.1, max_delay=1.0,
                                             backoff_multiplier=2.0, connect_timeout=5.0),
            socket_factory=sockets,
            timer_factory=timers,
            rng=random.Random(1234),
            **kwargs
        )
        created.append(conn)
        return conn

    yield factory

    for conn in created:
        conn.close()
