"""
Tests for interactive-mode line handling
"""

import asyncio
import threading
import time

from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from mc_rcon.connection import ConnectionState
from mc_rcon.errors import AuthenticationFailed, Disconnected, ProtocolError
from mc_rcon.output import OutputFormatter, plain
from mc_rcon.rcon_ui import BoundedFileHistory, Console, make_history, run_plain, run_rcon_ui


class FakeSession:
    server_address = "127.0.0.1:25575"

    def __init__(self, results=(), reachable=True, reconnect_error=None):
        self.results = list(results)
        self.commands = []
        self.reconnects = 0
        self.reachable = reachable
        self.reconnect_error = reconnect_error

    def execute(self, command):
        self.commands.append(command)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def reconnect(self, config=None):
        self.reconnects += 1
        if self.reconnect_error:
            raise self.reconnect_error
        return self

    def is_authenticated_and_reachable(self):
        return self.reachable


def lines(outputs):
    return [plain(o) for o in outputs]


class TestConsole:

    def setup_method(self):
        self.fmt = OutputFormatter()

    def test_command(self):
        session = FakeSession(["Set the time to 1000"])
        assert lines(Console(session, self.fmt).handle("time set day")) == ["Set the time to 1000"]
        assert session.commands == ["time set day"]

    def test_blank_line_does_nothing(self):
        session = FakeSession()
        assert Console(session, self.fmt).handle("   ") == []
        assert session.commands == []

    def test_empty_response_prints_nothing(self):
        assert Console(FakeSession([""]), self.fmt).handle("say hi") == []

    def test_quit(self):
        console = Console(FakeSession(), self.fmt)
        assert lines(console.handle("EXIT")) == ["Goodbye!"]
        assert console.done

    def test_help(self):
        assert "reconnect" in lines(Console(FakeSession(), self.fmt).handle("help"))[0]

    def test_status(self):
        out = lines(Console(FakeSession(reachable=False), self.fmt).handle("status"))
        assert out == ["Connection status: Disconnected (127.0.0.1:25575)"]

    def test_reconnect_builtin(self):
        session = FakeSession()
        assert lines(Console(session, self.fmt).handle("reconnect")) == ["Reconnected successfully"]
        assert session.reconnects == 1

    def test_reconnect_builtin_failure(self):
        session = FakeSession(reconnect_error=AuthenticationFailed("bad password"))
        assert lines(Console(session, self.fmt).handle("reconnect")) == ["Error: bad password"]

    def test_protocol_error_is_reported(self):
        session = FakeSession([ProtocolError("too many fragments")])
        assert lines(Console(session, self.fmt).handle("list")) == ["Error: too many fragments"]
        assert session.reconnects == 0

    def test_network_error_reconnects_and_retries(self):
        session = FakeSession([Disconnected("gone"), "There are 0 players"])
        out = lines(Console(session, self.fmt).handle("list"))
        assert out == [
            "Error: Connection lost. Attempting to reconnect...",
            "Reconnected. Retrying command...",
            "There are 0 players",
        ]
        assert session.commands == ["list", "list"]
        assert session.reconnects == 1

    def test_network_error_reconnect_fails(self):
        session = FakeSession([Disconnected("gone")], reconnect_error=Disconnected("refused"))
        out = lines(Console(session, self.fmt).handle("list"))
        assert out[-1] == "Error: Failed to reconnect: refused"
        assert session.commands == ["list"]

    def test_retry_fails_again(self):
        session = FakeSession([Disconnected("gone"), Disconnected("still gone")])
        out = lines(Console(session, self.fmt).handle("list"))
        assert out[-1] == "Error: still gone"
        assert session.reconnects == 1


class TestRunPlain:

    def test_loop_until_quit(self):
        session = FakeSession(["pong"])
        inputs = iter(["list", "quit", "never read"])
        written = []
        run_plain(Console(session, OutputFormatter()), read=lambda p: next(inputs), write=written.append)
        assert lines(written)[1:] == ["pong", "Goodbye!"]
        assert session.commands == ["list"]

    def test_eof_ends_loop(self):
        def read(prompt):
            raise EOFError

        written = []
        run_plain(Console(FakeSession(), OutputFormatter()), read=read, write=written.append)
        assert len(written) == 1


class TestHistory:

    def test_in_memory_without_path(self):
        assert not isinstance(make_history(None, 10), BoundedFileHistory)

    def test_loads_only_newest(self, tmp_path):
        path = tmp_path / "hist"
        hist = make_history(path, 1000)
        for cmd in ["one", "two", "three"]:
            hist.store_string(cmd)
        assert list(BoundedFileHistory(path, 2).load_history_strings()) == ["three", "two"]


class SlowSession(FakeSession):
    """Takes a while per command and records how many run at once."""

    state = ConnectionState.READY

    def __init__(self, delay):
        super().__init__()
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def execute(self, command):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
            self.commands.append(command)
        return command.upper()


class TestFullScreenConsole:

    def test_lines_typed_during_a_command_wait_their_turn(self):
        session = SlowSession(0.3)
        console = Console(session, OutputFormatter())

        async def drive():
            with create_pipe_input() as inp:
                ui = asyncio.ensure_future(run_rcon_ui(console, input=inp, output=DummyOutput()))
                await asyncio.sleep(0.2)
                inp.send_text("list\r")
                await asyncio.sleep(0.05)
                inp.send_text("seed\r")
                await asyncio.sleep(0.05)
                inp.send_text("quit\r")
                await asyncio.wait_for(ui, 10)

        asyncio.run(drive())
        assert session.max_active == 1
        assert session.commands == ["list", "seed"]
        assert console.done
