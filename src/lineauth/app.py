"""Typer application and CLI entry point for lineauth.

The ``lineauth`` command exercises a LINE Login channel by hand, which is
handy when registering a new channel or debugging a callback:

    lineauth pkce                          # fresh verifier/challenge pair
    lineauth authorize-url                 # URL to open, plus state/verifier to keep
    lineauth exchange URL --state S --verifier V   # finish the login from the callback URL
    lineauth profile --token T             # fetch a profile

Channel settings come from :func:`lineauth.config.resolve_config`. The
CLI always runs the strategy in manual PKCE mode: it generates the pair
itself and prints the verifier, because no store outlives the process.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, NoReturn, Optional, TypeVar

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler

from lineauth import __version__
from lineauth.exceptions import LineAuthError
from lineauth.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE
from lineauth.models import LineProfile, PKCEMode, StrategyConfig, TokenSet
from lineauth.output import error, format_data, info, suggest
from lineauth.strategy import AuthOptions, AuthRequest, AuthSuccess, LineStrategy, PlainVerify, Redirect

T = TypeVar("T")

app = typer.Typer(
    name="lineauth",
    help="Exercise a LINE Login channel from the command line.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"lineauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to a JSON or YAML channel config."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Set up output and logging before every sub-command."""
    from lineauth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    _configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _configure_logging(verbose: bool, no_color: bool) -> None:
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        show_time=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _load_config(ctx: typer.Context) -> StrategyConfig:
    from lineauth.config import resolve_config

    config = resolve_config((ctx.obj or {}).get("config"))
    return config.model_copy(update={"pkce_mode": PKCEMode.DISABLED})


def _build_strategy(config: StrategyConfig) -> LineStrategy:
    """Create the strategy used by the commands."""
    return LineStrategy(config, PlainVerify(lambda tokens, profile: profile))


def _fail(exc: LineAuthError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code) from None


def _strategy_from_context(ctx: typer.Context) -> LineStrategy:
    try:
        return _build_strategy(_load_config(ctx))
    except LineAuthError as exc:
        _fail(exc)


def _run(awaitable: Awaitable[T]) -> T:
    """Run *awaitable*, turning lineauth errors into a clean exit."""
    try:
        return asyncio.run(awaitable)  # type: ignore[arg-type]
    except LineAuthError as exc:
        _fail(exc)


def _profile_data(profile: LineProfile) -> dict[str, Any]:
    return profile.model_dump(exclude={"raw"})


def _token_data(tokens: TokenSet) -> dict[str, Any]:
    return tokens.model_dump(exclude_none=True)


@app.command("pkce")
def pkce_command() -> None:
    """Print a freshly generated PKCE verifier and S256 challenge."""
    from lineauth.pkce import generate_pkce_pair

    format_data(generate_pkce_pair().model_dump())


@app.command("authorize-url")
def authorize_url_command(
    ctx: typer.Context,
    callback_url: Optional[str] = typer.Option(None, help="Override the redirect_uri."),
    scope: Optional[str] = typer.Option(None, help="Space-separated scopes to request."),
    pkce: bool = typer.Option(True, "--pkce/--no-pkce", help="Attach a PKCE challenge."),
) -> None:
    """Print an authorization URL together with the state and verifier to keep."""
    from lineauth.pkce import generate_pkce_pair, generate_state

    strategy = _strategy_from_context(ctx)

    state = generate_state()
    pair = generate_pkce_pair() if pkce else None
    options = AuthOptions(
        callback_url=callback_url,
        scope=tuple(scope.split()) if scope else None,
        state=state,
        code_challenge=pair.code_challenge if pair else None,
    )

    outcome = _run(strategy.authenticate(AuthRequest(), options))
    if not isinstance(outcome, Redirect):
        _fail(LineAuthError("Expected an authorization redirect"))

    data: dict[str, Any] = {"url": outcome.url, "state": state}
    if pair is not None:
        data["code_verifier"] = pair.code_verifier
    format_data(data)
    if pair is not None:
        suggest(
            "After login, run: lineauth exchange <callback-url> --state <state> --verifier <code_verifier>"
        )
    else:
        suggest("After login, run: lineauth exchange <callback-url> --state <state>")


@app.command("exchange")
def exchange_command(
    ctx: typer.Context,
    callback: str = typer.Argument(help="Callback URL LINE redirected the browser to."),
    state: str = typer.Option(..., "--state", help="State printed by authorize-url."),
    verifier: Optional[str] = typer.Option(
        None, "--verifier", help="code_verifier printed by authorize-url."
    ),
    callback_url: Optional[str] = typer.Option(None, help="Override the redirect_uri."),
) -> None:
    """Finish a login from its callback URL and print the profile and tokens.

    The callback's ``state`` must match ``--state``; LINE denials carried by
    the URL fail with their own message.
    """
    strategy = _strategy_from_context(ctx)

    query = dict(httpx.URL(callback).params)
    if not query.get("code") and not query.get("error") and not query.get("error_code"):
        _fail(LineAuthError("Callback URL carries no authorization code", exit_code=EXIT_INVALID_USAGE))

    outcome = _run(
        strategy.authenticate(
            AuthRequest(query=query),
            AuthOptions(callback_url=callback_url, state=state, code_verifier=verifier),
        )
    )
    if not isinstance(outcome, AuthSuccess):
        _fail(LineAuthError("Expected a completed login"))

    info(f"Logged in as {outcome.profile.display_name}")
    format_data({"profile": _profile_data(outcome.profile), "tokens": _token_data(outcome.tokens)})


@app.command("profile")
def profile_command(
    ctx: typer.Context,
    token: str = typer.Option(..., "--token", "-t", help="Access token."),
) -> None:
    """Fetch the LINE profile that *token* belongs to."""
    strategy = _strategy_from_context(ctx)

    profile = _run(strategy.user_profile(token))
    format_data(_profile_data(profile))


def main() -> None:
    """CLI entry point invoked by the ``lineauth`` console script.

    :class:`~lineauth.exceptions.LineAuthError` instances exit with their
    ``exit_code``; anything else exits with the generic failure code.
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except LineAuthError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
