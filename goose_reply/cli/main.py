"""CLI entry point.

Provides the command-line interface with commands for:
- status: Check that the backend is reachable
- chat: Stream replies and answer tool confirmation requests
- events: Dump the raw event stream of one turn
"""

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from goose_reply.client import ReplyClientConfig, ReplySession
from goose_reply.events import ConfirmationAction, ToolConfirmationRequest, user_message
from goose_reply.exceptions import GooseReplyError
from goose_reply.logging_config import configure_logging
from goose_reply.settings import get_settings

app = typer.Typer(
    name="goose-reply",
    help="Stream replies from a goose agent backend",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_ACTION_CHOICES = {
    "1": ConfirmationAction.ALLOW_ONCE,
    "2": ConfirmationAction.ALWAYS_ALLOW,
    "3": ConfirmationAction.DENY,
}

UrlOption = Annotated[
    Optional[str],  # noqa: UP007
    typer.Option("--url", "-u", help="Backend base URL (defaults to GOOSE_URL)"),
]
SessionOption = Annotated[
    str,
    typer.Option("--session", "-s", help="Backend session id"),
]


def _open_session(url: str | None) -> ReplySession:
    config = ReplyClientConfig.from_settings(get_settings())
    if url:
        config = config.model_copy(update={"base_url": url})
    return ReplySession(config)


@app.callback()
def main(
    log_level: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option(
            "--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR (defaults to LOG_LEVEL)"
        ),
    ] = None,
) -> None:
    """Configure logging for every command."""
    level = log_level.upper() if log_level else None
    if level is not None and level not in _LOG_LEVELS:
        msg = f"must be one of {', '.join(_LOG_LEVELS)}"
        raise typer.BadParameter(msg, param_hint="--log-level")
    configure_logging(level)  # type: ignore[arg-type]


@app.command()
def status(url: UrlOption = None) -> None:
    """Check that the backend answers its health endpoint."""
    with _open_session(url) as session:
        healthy = session.health_check()
        base_url = session.base_url

    if healthy:
        console.print(f"[green]✅ Backend at {base_url} is healthy[/green]")
        return
    console.print(f"[red]❌ Backend at {base_url} is not healthy[/red]")
    raise typer.Exit(code=1)


def _ask_confirmation(request: ToolConfirmationRequest) -> ConfirmationAction:
    """Show a confirmation request and read the user's decision."""
    lines = [f"[bold]Tool:[/bold] {escape(request.tool_name)}", f"[dim]ID: {request.id}[/dim]"]
    if request.prompt:
        lines.append(f"[yellow]⚠️  {escape(request.prompt)}[/yellow]")
    if request.arguments:
        lines.append(f"[bold]Arguments:[/bold] {escape(str(request.arguments))}")
    lines.append("\n1. Allow once   2. Always allow   3. Deny")

    console.print()
    console.print(Panel("\n".join(lines), title="🔧 Tool Confirmation", border_style="yellow"))
    choice = Prompt.ask("Choose action", choices=list(_ACTION_CHOICES), default="3")
    return _ACTION_CHOICES[choice]


def _run_turn(
    session: ReplySession,
    session_id: str,
    text: str,
    auto_confirm: ConfirmationAction | None,
) -> bool:
    """Stream one reply to the console. Returns False if the turn failed."""
    for item in session.stream_with_confirmations(
        session_id, [user_message(text)], auto_confirm=auto_confirm
    ):
        if isinstance(item, str):
            console.print(item, end="", markup=False, highlight=False)
            continue

        action = _ask_confirmation(item)
        if session.confirm(item.id, action, session_id):
            console.print(f"[green]Confirmed with action: {action}[/green]")
        else:
            console.print("[red]Failed to send confirmation[/red]")

    console.print()
    if session.last_error:
        console.print(f"[red]Error: {escape(session.last_error)}[/red]")
        return False
    return True


@app.command()
def chat(
    session_id: SessionOption,
    message: Annotated[
        Optional[str],  # noqa: UP007
        typer.Argument(help="Message to send (or leave empty for interactive mode)"),
    ] = None,
    auto_confirm: Annotated[
        Optional[ConfirmationAction],  # noqa: UP007
        typer.Option("--auto-confirm", "-a", help="Answer every tool request with this action"),
    ] = None,
    url: UrlOption = None,
) -> None:
    """Chat with the agent in an existing backend session.

    Examples:
        goose-reply chat -s 20250101_1 "List the files here"
        goose-reply chat -s 20250101_1 --auto-confirm allow_once "Run the tests"
        goose-reply chat -s 20250101_1  # Interactive mode
    """
    with _open_session(url) as session:
        try:
            if message:
                if not _run_turn(session, session_id, message, auto_confirm):
                    raise typer.Exit(code=1)
                return

            console.print(
                Panel(
                    f"Session [cyan]{escape(session_id)}[/cyan]\n"
                    "Type [cyan]'exit'[/cyan] or [cyan]'quit'[/cyan] to end.",
                    title="💬 Chat",
                    border_style="blue",
                )
            )
            while True:
                try:
                    user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                except (KeyboardInterrupt, EOFError):
                    break

                if not user_input:
                    continue
                if user_input.lower() in ("exit", "quit", "q"):
                    break
                _run_turn(session, session_id, user_input, auto_confirm)
        except GooseReplyError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e

    console.print("[dim]Chat session ended.[/dim]")


@app.command()
def events(
    session_id: SessionOption,
    message: Annotated[str, typer.Argument(help="Message to send")],
    url: UrlOption = None,
) -> None:
    """Print every event of one reply turn as JSON."""
    with _open_session(url) as session:
        try:
            for event in session.stream_events(session_id, [user_message(message)]):
                console.print_json(event.model_dump_json(by_alias=True))
        except GooseReplyError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e

        if session.last_error:
            raise typer.Exit(code=1)
