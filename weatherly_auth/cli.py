"""Operator command line for the file-backed credential engine"""

import argparse
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .auth.models import AuthResult
from .auth.service import AuthEngine, build_engine
from .core.config import load_settings
from .utils.exceptions import ConfigError
from .utils.logger import setup_logging

console = Console()


def _password(value: Optional[str], label: str = "Password") -> str:
    if value is not None:
        return value
    return Prompt.ask(label, password=True, console=console)


def _report(result: AuthResult) -> int:
    if result.success:
        console.print(f"[bold green]✓ {result.message}[/bold green]")
    else:
        console.print(f"[bold red]✗ {result.message}[/bold red]")
    return 0 if result.success else 1


def cmd_register(engine: AuthEngine, args: argparse.Namespace) -> int:
    return _report(engine.register(args.name, args.email, _password(args.password)))


def cmd_login(engine: AuthEngine, args: argparse.Namespace) -> int:
    result = engine.login(args.email, _password(args.password))
    code = _report(result)
    if result.success:
        cmd_whoami(engine, args)
    return code


def cmd_whoami(engine: AuthEngine, args: argparse.Namespace) -> int:
    session = engine.current_session()
    if session is None:
        console.print("[yellow]Not logged in[/yellow]")
        return 1

    table = Table(title="Session", box=box.ROUNDED, show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Name", session.name)
    table.add_row("Email", session.email)
    table.add_row("Expires", session.expiry.isoformat())
    console.print(table)
    return 0


def cmd_logout(engine: AuthEngine, args: argparse.Namespace) -> int:
    engine.logout()
    console.print("[bold green]✓ Logged out[/bold green]")
    return 0


def cmd_request_reset(engine: AuthEngine, args: argparse.Namespace) -> int:
    result = engine.request_reset(args.email)
    code = _report(result)
    if result.token:
        # No mail delivery here; the operator hands the token over
        console.print(f"Reset token: [bold]{result.token}[/bold]")
    return code


def cmd_reset(engine: AuthEngine, args: argparse.Namespace) -> int:
    return _report(engine.redeem_reset(args.token, _password(args.password, "New password")))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weatherly-auth", description="Manage weatherly accounts and sessions")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--data-dir", help="Override the data directory")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("name")
    p.add_argument("email")
    p.add_argument("--password")
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("login", help="Log in and open a session")
    p.add_argument("email")
    p.add_argument("--password")
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("whoami", help="Show the active session")
    p.set_defaults(func=cmd_whoami)

    p = sub.add_parser("logout", help="Close the active session")
    p.set_defaults(func=cmd_logout)

    p = sub.add_parser("request-reset", help="Issue a password reset token")
    p.add_argument("email")
    p.set_defaults(func=cmd_request_reset)

    p = sub.add_parser("reset", help="Set a new password with a reset token")
    p.add_argument("token")
    p.add_argument("--password")
    p.set_defaults(func=cmd_reset)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(Path(args.config) if args.config else None)
        if args.data_dir:
            settings = settings.model_copy(update={"data_dir": Path(args.data_dir)})
    except ConfigError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        return 2

    setup_logging(settings.logging.level, settings.logging.format)
    engine = build_engine(settings)
    return args.func(engine, args)
