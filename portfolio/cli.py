"""Command line for the portfolio service.

Examples:

    $ portfolio serve                                   # run the API on :5000

    $ portfolio pitch "Our support inbox is drowning"   # stream a pitch

    $ portfolio ask "Which projects used LangChain?"    # ask the assistant

    $ portfolio theme --toggle                          # switch dark/light
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from portfolio.client import PitchClient, PitchSession, TransportError
from portfolio.config import CONFIG_ENV_VAR, PortfolioConfig, load_config
from portfolio.render.display import get_display, init_display, shutdown_display
from portfolio.render.markdown import parse_markdown
from portfolio.render.terminal import LivePitchView, error_panel, to_renderable

app = typer.Typer(
    add_completion=False,
    help="Portfolio API server and streaming pitch client",
)
console = Console()


def _config_option():
    return typer.Option(
        Path("config.yaml"),
        "--config",
        "-c",
        envvar=CONFIG_ENV_VAR,
        help="Path to config.yaml",
    )


def _setup(config_path: Path, verbose: bool) -> PortfolioConfig:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        return load_config(str(config_path))
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def serve(
    config_path: Path = _config_option(),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Run the API with uvicorn on the configured host and port."""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    config = _setup(config_path, verbose=False)
    # The app module loads its own config on import; point it at the same file.
    os.environ[CONFIG_ENV_VAR] = str(config_path.resolve())
    uvicorn.run(
        "portfolio.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=reload,
    )


@app.command()
def pitch(
    problem: str = typer.Argument(..., help="The business problem to pitch a project for"),
    config_path: Path = _config_option(),
    base_url: Optional[str] = typer.Option(None, "--url", help="Override the server base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Generate a project pitch and render it as it streams in."""
    config = _setup(config_path, verbose)
    if not problem.strip():
        raise typer.Exit(code=2)

    ok = asyncio.run(_run_pitch(config, problem, base_url or config.client.base_url))
    if not ok:
        raise typer.Exit(code=1)


async def _run_pitch(config: PortfolioConfig, problem: str, base_url: str) -> bool:
    provider = init_display(config.display, width=console.width)
    view = LivePitchView(console, provider.current)
    try:
        async with PitchClient(base_url, timeout=config.client.timeout) as client:
            session = PitchSession(
                client,
                on_update=view.update,
                single_flight=config.client.single_flight,
            )
            view.start()
            try:
                return await session.submit(problem)
            finally:
                session.close()
                view.finish()
    finally:
        shutdown_display()


@app.command()
def ask(
    question: str = typer.Argument(..., help="A question about the portfolio"),
    config_path: Path = _config_option(),
    base_url: Optional[str] = typer.Option(None, "--url", help="Override the server base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Ask the portfolio assistant a question."""
    config = _setup(config_path, verbose)
    if not question.strip():
        raise typer.Exit(code=2)

    ok = asyncio.run(_run_ask(config, question, base_url or config.client.base_url))
    if not ok:
        raise typer.Exit(code=1)


async def _run_ask(config: PortfolioConfig, question: str, base_url: str) -> bool:
    display = init_display(config.display, width=console.width).current
    answer = ""
    try:
        async with PitchClient(base_url, timeout=config.client.timeout) as client:
            async for content in client.stream_answer(question):
                answer += content
        console.print(to_renderable(parse_markdown(answer), display))
        return True
    except TransportError as e:
        console.print(error_panel(str(e), display))
        return False
    finally:
        shutdown_display()


@app.command()
def theme(
    toggle: bool = typer.Option(False, "--toggle", "-t", help="Switch between dark and light"),
    config_path: Path = _config_option(),
):
    """Show the display theme, or toggle it."""
    config = _setup(config_path, verbose=False)
    init_display(config.display)
    try:
        provider = get_display()
        current = provider.toggle_theme() if toggle else provider.current
        console.print(f"Theme: [bold]{current.theme}[/bold]")
        if toggle and not config.display.state_path:
            console.print("[yellow]display.state_path is not set; the change will not persist[/yellow]")
    finally:
        shutdown_display()


if __name__ == "__main__":
    app()
