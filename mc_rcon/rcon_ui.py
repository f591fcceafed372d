# mc_rcon/rcon_ui.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.output import Output
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .errors import NetworkError, RconError
from .output import OutputFormatter, plain
from .session import Session

log = logging.getLogger(__name__)

LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area
QUIT = ("quit", "exit")

HELP = """
Interactive Mode Commands:
  help         Show this help message
  status       Show connection status
  reconnect    Reconnect to the server
  quit/exit    Leave interactive mode

Any other input is sent to the server as a command.

Common Minecraft commands:
  list                        Show online players
  time set day                Set time to day
  weather clear               Clear weather
  gamemode creative <player>  Set player to creative mode
  tp <player1> <player2>      Teleport player1 to player2
"""


class BoundedFileHistory(FileHistory):
    """FileHistory that only loads the newest `limit` entries."""

    def __init__(self, filename, limit: int):
        super().__init__(str(filename))
        self.limit = limit

    def load_history_strings(self) -> Iterable[str]:
        # the parent yields newest first
        for i, s in enumerate(super().load_history_strings()):
            if i >= self.limit:
                break
            yield s


def make_history(path: Optional[Path], limit: int) -> History:
    if path is None:
        return InMemoryHistory()
    path.parent.mkdir(parents=True, exist_ok=True)
    return BoundedFileHistory(path, limit)


class Console:
    """
    Line handling for interactive mode, independent of the terminal UI.

    `handle` takes one input line and returns rendered output lines; it never
    raises for RconError. A NetworkError while running a command triggers one
    reconnect and a single retry of that command.
    """

    def __init__(self, session: Session, formatter: OutputFormatter):
        self.session = session
        self.fmt = formatter
        self.done = False

    def handle(self, line: str) -> List:
        cmd = line.strip()
        if not cmd:
            return []
        low = cmd.lower()
        if low in QUIT:
            self.done = True
            return [self.fmt.info("Goodbye!")]
        if low == "help":
            return [self.fmt.info(HELP)]
        if low == "status":
            return [self.status()]
        if low == "reconnect":
            try:
                self.session.reconnect()
            except RconError as e:
                return [self.fmt.error(str(e))]
            return [self.fmt.info("Reconnected successfully")]
        return self.run(cmd)

    def status(self):
        up = self.session.is_authenticated_and_reachable()
        state = "Connected" if up else "Disconnected"
        return self.fmt.info(f"Connection status: {state} ({self.session.server_address})")

    def run(self, cmd: str) -> List:
        try:
            return self._response(self.session.execute(cmd))
        except NetworkError as e:
            log.info("command %r lost the connection: %s", cmd, e)
            out = [self.fmt.error("Connection lost. Attempting to reconnect...")]
        except RconError as e:
            return [self.fmt.error(str(e))]
        try:
            self.session.reconnect()
        except RconError as e:
            out.append(self.fmt.error(f"Failed to reconnect: {e}"))
            return out
        out.append(self.fmt.info("Reconnected. Retrying command..."))
        try:
            out.extend(self._response(self.session.execute(cmd)))
        except RconError as e:
            out.append(self.fmt.error(str(e)))
        return out

    def _response(self, text: str) -> List:
        return [self.fmt.response(text)] if text else []


def run_plain(console: Console, prompt: str = "rcon> ",
              read: Optional[Callable[[str], str]] = None,
              write: Optional[Callable] = None) -> None:
    """Line-by-line loop on stdin/stdout for dumb terminals and pipes."""
    read = read or input
    write = write or console.fmt.emit
    write(console.fmt.info("Entering interactive mode. Type 'quit', 'exit', or Ctrl+C to leave."))
    while not console.done:
        try:
            line = read(prompt)
        except (EOFError, KeyboardInterrupt):
            break
        for out in console.handle(line):
            write(out)


async def run_rcon_ui(console: Console, prompt: str = "rcon> ",
                      history: Optional[History] = None,
                      input: Optional[Input] = None,
                      output: Optional[Output] = None) -> None:
    """
    Fullscreen RCON console: scrolling output + an input bar.

    The session owns a single socket, so lines typed while a command is
    still running wait their turn on `busy` and go out one at a time.
    """
    session = console.session
    busy = asyncio.Lock()

    log_area = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,  # programmatic inserts
    )
    input_field = TextArea(
        height=1,
        prompt=prompt,
        multiline=False,
        history=history or InMemoryHistory(),
    )
    status = Label(
        text=lambda: f"RCON {session.server_address} [{session.state.value}]    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        input_field.buffer.append_to_history()
        input_field.buffer.document = Document(text="")
        if not cmd:
            return
        _append(app, log_area, f"{prompt}{cmd}\n")
        async with busy:
            if console.done:
                return
            outputs = await asyncio.to_thread(console.handle, cmd)
        for out in outputs:
            _append(app, log_area, plain(out).rstrip("\n") + "\n")
        if console.done and not event.app.is_done:
            event.app.exit()

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    root = HSplit([status, log_area, input_field])
    app = Application(
        layout=Layout(root, focused_element=input_field),
        key_bindings=kb,
        full_screen=True,
        input=input,
        output=output,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )
    _append(app, log_area, "Type 'help' for built-in commands, 'quit' to leave.\n")
    await app.run_async()


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """Append text to the TextArea and keep the buffer size bounded."""
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
