"""passgate CLI - log in to a password vault from the terminal."""

import os
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

import passgate
from passgate import console as pg_console
from passgate.config import get_settings
from passgate.exceptions import DeviceInfoError, StoreError
from passgate.handshake import LoginOrchestrator
from passgate.kdf import DEFAULT_ITERATIONS, derive_key, login_hash
from passgate.logging import configure_logging, enable_network_debug, get_logger
from passgate.outcomes import Failure
from passgate.store import ConfigStore
from passgate.trust import TrustDeviceManager

# Configure logging early using env vars directly.
# We avoid calling get_settings() here because PassgateSettings.__init__ creates
# directories as a side effect, which breaks test isolation.
# The -v/-vv and --log-format flags in main_callback() may reconfigure later.
configure_logging(
    level=os.environ.get("PASSGATE_LOG_LEVEL", "WARNING"),
    json_output=os.environ.get("PASSGATE_LOG_FORMAT", "console") == "json",
)

LOG = get_logger(__name__)

PASSWORD_ENVVAR = "PASSGATE_PASSWORD"

app = typer.Typer(
    name="passgate",
    help="""
    🔐 passgate - log in to a password vault from the terminal

    \b
    Quick start:
      passgate login you@example.com           Log in (prompts for master password)
      passgate login you@example.com --trust   Log in and trust this device
      passgate trust                           Show this device's trust id
      passgate config                          Show current configuration
    """,
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


@app.callback(invoke_without_command=True)
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v for info, -vv for debug)",
        ),
    ] = 0,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            help="Log output format: console (human-readable) or json (structured)",
        ),
    ] = None,
    network_debug: Annotated[
        bool,
        typer.Option(
            "--network-debug",
            help="Enable HTTP debug logging (urllib3, http.client). Logs cookies.",
        ),
    ] = False,
) -> None:
    """passgate - log in to a password vault from the terminal."""
    settings = get_settings()
    json_output = (log_format or settings.log_format) == "json"

    if verbose >= 2:
        configure_logging(level="DEBUG", json_output=json_output)
    elif verbose >= 1:
        configure_logging(level="INFO", json_output=json_output)
    elif log_format is not None:
        configure_logging(level=settings.log_level, json_output=json_output)

    if network_debug:
        enable_network_debug()


@app.command()
def version() -> None:
    """Show passgate version and installation info."""
    settings = get_settings()
    console.print(
        Panel(
            f"[bold cyan]passgate[/bold cyan] v{passgate.__version__}\n\n"
            f"[dim]Config:[/dim] {settings.config_dir}\n"
            f"[dim]Server:[/dim] {settings.server}",
            title="Password vault login",
            border_style="cyan",
        )
    )


def _read_master_password() -> str:
    env_value = os.environ.get(PASSWORD_ENVVAR)
    if env_value:
        return env_value
    return click.prompt("Master Password", hide_input=True, err=True)


@app.command("login")
def login_command(
    username: Annotated[str, typer.Argument(help="Account email address")],
    trust: Annotated[
        bool,
        typer.Option(
            "--trust",
            help="Trust this device so future logins skip multifactor prompts",
        ),
    ] = False,
    iterations: Annotated[
        int,
        typer.Option(
            "--iterations",
            min=1,
            help="Key derivation iterations configured for the account",
        ),
    ] = DEFAULT_ITERATIONS,
    fragment_id: Annotated[
        str | None,
        typer.Option("--fragment-id", help="Fragment id to correlate with the login"),
    ] = None,
) -> None:
    """Log in and verify the account credentials.

    The master password is read from PASSGATE_PASSWORD or prompted for.
    """
    try:
        password = _read_master_password()
    except click.Abort:
        pg_console.error("Aborted.")
        raise SystemExit(1) from None

    key = derive_key(username, password, iterations)
    auth_hash = login_hash(username, password, iterations)
    orchestrator = LoginOrchestrator(interruptible=True)

    try:
        outcome = orchestrator.login(
            username,
            fragment_id,
            auth_hash,
            key,
            iterations,
            request_trust=trust,
        )
    except DeviceInfoError as exc:
        LOG.error("device_info_unavailable", error=str(exc))
        pg_console.error(str(exc))
        raise SystemExit(2) from exc
    except StoreError as exc:
        pg_console.error(str(exc))
        raise SystemExit(1) from exc

    if isinstance(outcome, Failure):
        pg_console.error(outcome.message)
        raise SystemExit(1)

    session = outcome.session
    pg_console.success(f"Logged in as {username.lower()} on {session.server}")
    if session.private_key is None:
        pg_console.warn("Server did not return a usable private key.")


@app.command("trust")
def trust_command(
    forget: Annotated[
        bool,
        typer.Option("--forget", help="Delete this device's trust id"),
    ] = False,
) -> None:
    """Show or delete this device's trust id."""
    manager = TrustDeviceManager(ConfigStore())
    try:
        if forget:
            if manager.forget():
                pg_console.success("Trust id deleted")
            else:
                pg_console.info("No trust id stored")
            return

        trust_id = manager.get_or_create_trust_id(force_create=False)
        if trust_id is None:
            pg_console.info(
                "This device has no trust id. Use 'passgate login --trust' to create one."
            )
            return
        label = manager.compute_device_label()
    except (StoreError, DeviceInfoError) as exc:
        pg_console.error(str(exc))
        raise SystemExit(1) from exc

    console.print(f"[dim]Trust id:[/dim] {escape(trust_id)}\n[dim]Label:[/dim]    {escape(label)}")


@app.command("config")
def config() -> None:
    """Show current passgate configuration."""
    settings = get_settings()
    max_polls = settings.oob_max_polls if settings.oob_max_polls is not None else "unlimited"
    timeout = f"{settings.http_timeout}s" if settings.http_timeout is not None else "none"

    info = f"""
[dim]Config directory:[/dim]   {settings.config_dir}
[dim]Server:[/dim]             {settings.server}
[dim]Alternate server:[/dim]   {settings.alternate_server}
[dim]Max redirects:[/dim]      {settings.max_redirects}
[dim]Out-of-band polls:[/dim]  {max_polls}
[dim]HTTP timeout:[/dim]       {timeout}
[dim]Log level:[/dim]          {settings.log_level}
[dim]Log format:[/dim]         {settings.log_format}"""

    console.print(Panel(info.strip(), title="⚙ Configuration", border_style="cyan"))


if __name__ == "__main__":
    app()
