"""CLI entry point for ptymux."""

from __future__ import annotations

import asyncio
import logging
import os
import select
import shutil
import signal
import sys
import termios
import threading
import tty

import typer
from rich.console import Console
from rich.table import Table

from ptymux.codec import decode_payload, encode_payload
from ptymux.config import MuxConfig, TerminalConfig
from ptymux.errors import MuxError
from ptymux.pty.backend import resolve_shell_command

app = typer.Typer(
    name="ptymux",
    help="Run and multiplex PTY-backed shell sessions.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def run(
    command: str = typer.Argument(help="Shell command line to run in a fresh session."),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Working directory."),
    cols: int = typer.Option(80, "--cols", help="Terminal width in cells."),
    rows: int = typer.Option(24, "--rows", help="Terminal height in cells."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run a command in a PTY session and stream its output until the shell exits."""
    setup_logging(verbose)

    workdir = os.path.abspath(cwd)
    if not os.path.isdir(workdir):
        typer.echo(f"Error: Directory not found: {workdir}", err=True)
        raise typer.Exit(1)

    config = MuxConfig.load(config_file)
    terminal = TerminalConfig(cwd=workdir, cols=cols, rows=rows)

    try:
        asyncio.run(_run_session(command, terminal, config))
    except MuxError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


async def _run_session(command: str, terminal: TerminalConfig, config: MuxConfig) -> None:
    """Drive one session through the command surface and print its output."""
    from ptymux.command import create_terminal_commands
    from ptymux.pty.manager import TerminalMultiplexer
    from ptymux.session.wire import EventType, Wire

    session_id = "run"
    wire = Wire()
    wire.attach_loop()
    mux = TerminalMultiplexer(wire, config)
    commands = create_terminal_commands(mux)

    # --- Wire consumer (async background task) ---
    async def _consume_wire() -> None:
        queue = wire.subscribe(session_id)
        out = sys.stdout.buffer
        while True:
            event = await queue.get()
            if event is None:
                break
            if event.type == EventType.TERMINAL_OUTPUT and event.payload:
                out.write(decode_payload(event.payload))
                out.flush()
            elif event.type == EventType.TERMINAL_CLOSED:
                break
        wire.unsubscribe(queue)

    consumer_task = asyncio.create_task(_consume_wire())

    try:
        commands.dispatch(
            "create_terminal_session",
            {"session_id": session_id, "config": terminal.model_dump()},
        )
        commands.dispatch(
            "write_to_terminal",
            {
                "session_id": session_id,
                "data": encode_payload(f"{command}\nexit\n".encode()),
            },
        )
        await consumer_task
    finally:
        mux.cleanup()
        wire.close()
        if not consumer_task.done():
            await consumer_task


class _TerminalPublisher:
    """Writes session output straight to this process's terminal."""

    def __init__(self) -> None:
        self.closed = threading.Event()

    def publish(self, session_id: str, chunk: bytes) -> None:
        sys.stdout.buffer.write(chunk)
        sys.stdout.buffer.flush()

    def publish_closed(self, session_id: str) -> None:
        self.closed.set()


@app.command()
def shell(
    cwd: str = typer.Option(".", "--cwd", "-C", help="Working directory."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Attach this terminal to a new interactive shell session."""
    # No stderr handler here: log lines would corrupt the raw-mode display.
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not sys.stdin.isatty():
        typer.echo("Error: shell needs an interactive terminal.", err=True)
        raise typer.Exit(1)

    from ptymux.pty.manager import TerminalMultiplexer

    config = MuxConfig.load(config_file)
    publisher = _TerminalPublisher()
    mux = TerminalMultiplexer(publisher, config)
    session_id = "shell"

    size = shutil.get_terminal_size()
    try:
        mux.create_session(
            session_id,
            TerminalConfig(cwd=os.path.abspath(cwd), cols=size.columns, rows=size.lines),
        )
    except MuxError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    def _on_winch(signum: int, frame: object) -> None:
        new = shutil.get_terminal_size()
        try:
            mux.resize_session(session_id, new.columns, new.lines)
        except MuxError:
            pass

    stdin_fd = sys.stdin.fileno()
    saved = termios.tcgetattr(stdin_fd)
    previous_handler = signal.signal(signal.SIGWINCH, _on_winch)
    tty.setraw(stdin_fd)
    try:
        while not publisher.closed.is_set():
            ready, _, _ = select.select([stdin_fd], [], [], 0.1)
            if not ready:
                continue
            data = os.read(stdin_fd, 1024)
            if not data:
                break
            mux.write_to_session(session_id, data)
    except MuxError:
        # Shell went away between select() and the write
        pass
    finally:
        termios.tcsetattr(stdin_fd, termios.TCSADRAIN, saved)
        signal.signal(signal.SIGWINCH, previous_handler)
        mux.cleanup()


@app.command()
def info(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Show the resolved shell, limits, and available commands."""
    from ptymux.command import create_terminal_commands
    from ptymux.pty.manager import TerminalMultiplexer
    from ptymux.session.wire import Wire

    config = MuxConfig.load(config_file)
    shell_cmd = resolve_shell_command(config.shell)
    console = Console()

    console.print("[bold]ptymux[/bold]")
    console.print(f"Shell: {' '.join(shell_cmd.argv)}")
    console.print(f"History cap: {config.buffer.max_bytes:,} bytes")
    console.print(f"Read chunk: {config.buffer.read_chunk_size:,} bytes")
    console.print(f"Kill timeout: {config.kill_timeout}s")

    commands = create_terminal_commands(TerminalMultiplexer(Wire(), config))
    table = Table(title="Commands")
    table.add_column("Name", style="cyan")
    table.add_column("Parameters")
    table.add_column("Description")
    for desc in commands.describe():
        params = ", ".join(desc["parameters"].get("properties", {}))
        table.add_row(desc["name"], params, desc["description"])
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
