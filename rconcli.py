#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, time, asyncio, logging
from pathlib import Path

from mc_rcon import __version__
from mc_rcon.connection import ConnectionState
from mc_rcon.errors import InvalidConfig, RconError
from mc_rcon.output import FORMATS, TEXT, OutputFormatter, use_colors
from mc_rcon.retry import connect_with_retry
from mc_rcon.session import RconConfig, Session
from mc_rcon.util import HISTORY_FILE, env_address, env_password, ms, parse_address, rcon_props, setup_logging

log = logging.getLogger("rconcli")

INFO_COMMANDS = ["list", "version"]
DETAILED_COMMANDS = INFO_COMMANDS + ["seed", "difficulty", "gamerule"]

# --- config -------------------------------------------------------------------

def build_config(args) -> RconConfig:
    """Explicit flags, then --properties, then RCON_* env vars, then defaults."""
    address = args.address
    password = args.password
    if args.properties:
        port, props_pw = rcon_props(Path(args.properties).expanduser())
        if address is None and port is not None:
            address = f"localhost:{port}"
        password = password or props_pw
    address = address or env_address()
    password = password or env_password()
    if not password:
        raise InvalidConfig("password is required (use -p or RCON_PASSWORD)")
    return RconConfig.from_string(address, password, args.timeout, args.read_timeout)

def validate(args) -> None:
    if args.timeout <= 0:
        raise InvalidConfig("Timeout must be greater than 0")
    if args.read_timeout is not None and args.read_timeout <= 0:
        raise InvalidConfig("Read timeout must be greater than 0")
    if args.address is not None:
        try:
            parse_address(args.address)
        except ValueError as e:
            raise InvalidConfig(str(e)) from None
    if args.cmd in ("exec", "run") and not args.command.strip():
        raise InvalidConfig("Command cannot be empty")
    if args.cmd in ("interactive", "repl") and args.history_size <= 0:
        raise InvalidConfig("History size must be greater than 0")
    if args.cmd == "ping":
        if args.count <= 0:
            raise InvalidConfig("Ping count must be greater than 0")
        if args.interval <= 0:
            raise InvalidConfig("Ping interval must be greater than 0")

def open_session(config: RconConfig, out: OutputFormatter) -> Session:
    def retrying(attempt: int, err: RconError) -> None:
        out.emit(out.error(f"Connection attempt {attempt} failed: {err}. Retrying..."), err=True)
    session = connect_with_retry(config, on_retry=retrying)
    return session

# --- exec/interactive/ping/info/players ---------------------------------------

def do_exec(args, config: RconConfig, out: OutputFormatter) -> int:
    with open_session(config, out) as session:
        t0 = time.perf_counter()
        response = session.execute(args.command)
        elapsed = time.perf_counter() - t0
    out.emit(out.response(response))
    if args.time:
        out.emit(out.info(f"Executed in {ms(elapsed)}"), err=True)
    return 0

def do_interactive(args, config: RconConfig, out: OutputFormatter) -> int:
    from mc_rcon.rcon_ui import Console, make_history, run_plain, run_rcon_ui

    with open_session(config, out) as session:
        console = Console(session, out)
        if args.plain or not sys.stdin.isatty():
            run_plain(console, args.prompt)
            return 0
        history = make_history(HISTORY_FILE if args.history else None, args.history_size)
        try:
            asyncio.run(run_rcon_ui(console, args.prompt, history))
        except KeyboardInterrupt:
            pass
    return 0

def do_ping(args, config: RconConfig, out: OutputFormatter) -> int:
    with open_session(config, out) as session:
        out.emit(out.info(f"Pinging {config.display_address} {args.count} time(s)"))
        ok, total = 0, 0.0
        for i in range(1, args.count + 1):
            t0 = time.perf_counter()
            try:
                session.ping()
            except RconError as e:
                out.emit(out.error(f"Ping {i}: Failed - {e}"), err=True)
            else:
                elapsed = time.perf_counter() - t0
                ok += 1
                total += elapsed
                out.emit(out.info(f"Ping {i}: Connected in {ms(elapsed)}"))
            if i < args.count:
                time.sleep(args.interval)
    rate = ok / args.count * 100
    avg = ms(total / ok) if ok else ms(0)
    out.emit(out.info(f"Summary: {ok}/{args.count} successful ({rate:.1f}%), average: {avg}"))
    return 0 if ok else 1

def do_info(args, config: RconConfig, out: OutputFormatter) -> int:
    commands = DETAILED_COMMANDS if args.detailed else INFO_COMMANDS
    with open_session(config, out) as session:
        for command in commands:
            try:
                response = session.execute(command)
            except RconError as e:
                out.emit(out.error(f"Failed to get {command}: {e}"), err=True)
                continue
            out.emit(out.info(f"=== {command.upper()} ==="))
            out.emit(out.response(response))
            if out.fmt == TEXT:
                print()
    return 0

def do_players(args, config: RconConfig, out: OutputFormatter) -> int:
    with open_session(config, out) as session:
        try:
            response = session.execute("list uuids" if args.uuids else "list")
        except RconError as e:
            if not args.uuids:
                raise
            log.info("'list uuids' failed (%s); falling back to 'list'", e)
            if session.state is not ConnectionState.READY:
                session.reconnect()
            response = session.execute("list")
    out.emit(out.response(response))
    return 0

# --- argparse -----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(
        prog="rconcli",
        description="Minecraft RCON command-line client.",
        epilog=(
            "examples:\n"
            "  rconcli -a localhost:25575 -p secret exec \"time set day\"\n"
            "  rconcli -a localhost:25575 -p secret interactive\n"
            "  rconcli -a play.example.com:25575 -p mypass ping"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-a", "--address", metavar="HOST:PORT",
                   help="RCON server address (default: localhost:25575 or $RCON_ADDRESS)")
    p.add_argument("-p", "--password", help="RCON password (default: $RCON_PASSWORD)")
    p.add_argument("-t", "--timeout", type=float, default=5.0, metavar="SECONDS",
                   help="Connection timeout in seconds")
    p.add_argument("--read-timeout", type=float, metavar="SECONDS",
                   help="Give up on a silent server after this many seconds (default: wait forever)")
    p.add_argument("--properties", metavar="PATH",
                   help="Read rcon.port / rcon.password from a server.properties file")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity")
    p.add_argument("-f", "--format", choices=FORMATS, default=TEXT, help="Output format")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("exec", aliases=["run"], help="Execute a single command")
    pe.add_argument("command", help="Command to execute (e.g. 'list', 'time set day')")
    pe.add_argument("--time", action="store_true", help="Show command execution time")
    pe.set_defaults(func=do_exec)

    pi = sub.add_parser("interactive", aliases=["repl"], help="Start an interactive RCON session")
    pi.add_argument("--prompt", default="rcon> ", help="Prompt for interactive mode")
    pi.add_argument("--history", action="store_true",
                    help=f"Keep command history in {HISTORY_FILE}")
    pi.add_argument("--history-size", type=int, default=1000, help="Maximum number of history entries")
    pi.add_argument("--plain", action="store_true", help="Plain line prompt instead of the full-screen console")
    pi.set_defaults(func=do_interactive)

    pp = sub.add_parser("ping", help="Test the connection to the server")
    pp.add_argument("-c", "--count", type=int, default=1, help="Number of pings")
    pp.add_argument("-i", "--interval", type=float, default=1.0, help="Seconds between pings")
    pp.set_defaults(func=do_ping)

    pn = sub.add_parser("info", help="Show server information")
    pn.add_argument("--detailed", action="store_true", help="Include seed, difficulty and gamerules")
    pn.set_defaults(func=do_info)

    pl = sub.add_parser("players", help="List online players")
    pl.add_argument("--uuids", action="store_true", help="Show player UUIDs")
    pl.set_defaults(func=do_players)

    return p

def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    out = OutputFormatter(args.format, use_colors(args.no_color))
    try:
        validate(args)
        config = build_config(args)
    except InvalidConfig as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        return 1
    log.info("rconcli %s -> %s", __version__, config.display_address)
    try:
        return args.func(args, config, out)
    except RconError as e:
        out.emit(out.error(str(e)), err=True)
        return 1

if __name__ == "__main__":
    raise SystemExit(main())
