"""
QA Recorder - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--speed, --selectors, etc.)
    2. Environment variables (QA_RECORDER__REPLAY__SPEED, etc.)
    3. Config file (qa-recorder.yaml)

Usage:
    qa-recorder record https://example.com --name login
    qa-recorder replay 1712345678901 --speed slow
    qa-recorder export 1712345678901 login.json
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from qa_recorder import __version__
from qa_recorder.config import Settings, load_config
from qa_recorder.exceptions import QARecorderError
from qa_recorder.recorder import BrowserRecorder, Recording, Step
from qa_recorder.replay import ReplaySession, RunState, StepState, StepStatus
from qa_recorder.storage import RecordingStore, export_json, import_json
from qa_recorder.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="qa-recorder",
    help="Record web page interactions and replay them",
    add_completion=False,
)

console = Console()

_STATUS_STYLES = {
    StepState.EXECUTING: "[yellow]running[/yellow]",
    StepState.SUCCESS: "[green]✓ ok[/green]",
    StepState.ERROR: "[red]✗ error[/red]",
}


def _init(config: Optional[str], verbose: bool) -> Settings:
    try:
        settings = load_config(config)
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    setup_logging(
        level="DEBUG" if verbose else settings.logging.level,
        log_file=settings.logging.file,
        json_format=settings.logging.json_format,
    )
    return settings


def _store(settings: Settings) -> RecordingStore:
    return RecordingStore(settings.storage.recordings_file)


def _describe(step: Step) -> str:
    """One-line summary of a step for tables."""
    data = step.to_dict()
    if step.type.value == "navigate":
        return data["url"]
    if step.type.value == "setViewport":
        return f"{data['width']}x{data['height']}"
    selectors = data.get("selectors") or []
    target = selectors[0][0] if selectors else ""
    detail = data.get("value") if data.get("value") is not None else data.get("text")
    return f"{target}" + (f" = {detail!r}" if detail is not None else "")


async def _launch(settings: Settings):
    from playwright.async_api import async_playwright

    playwright_ctx = await async_playwright().start()
    launcher = getattr(playwright_ctx, settings.browser.browser_type)
    browser = await launcher.launch(
        headless=settings.browser.headless,
        channel=settings.browser.channel,
    )
    page = await browser.new_page(viewport={
        "width": settings.browser.viewport_width,
        "height": settings.browser.viewport_height,
    })
    page.set_default_navigation_timeout(settings.browser.timeout_ms)
    return playwright_ctx, browser, page


@app.command()
def record(
    url: str = typer.Argument(..., help="Page to start recording on"),
    name: str = typer.Option("recording", "--name", "-n", help="Recording title"),
    selectors: Optional[str] = typer.Option(None, "--selectors", "-s", help="Selector types: css,xpath,aria,text,pierce"),
    continue_id: Optional[int] = typer.Option(None, "--continue", help="Append to an existing recording"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Record interactions in a visible browser.

    While recording, type in the terminal:
        p [name]  pick the next clicked element as a check
        c         cancel picking
        Enter     stop and save

    Examples:
        qa-recorder record https://example.com --name login
        qa-recorder record https://example.com -s css,xpath,aria
        qa-recorder record https://example.com --continue 1712345678901
    """
    settings = _init(config, verbose)
    overrides = {"browser": {"headless": False}}
    if selectors:
        overrides["recorder"] = {"selector_types": [s.strip() for s in selectors.split(",") if s.strip()]}
    try:
        settings = settings.merge_with(overrides)
    except ValueError as e:
        console.print(f"[red]✗ Invalid options: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    store = _store(settings)
    existing: Optional[Recording] = None
    if continue_id is not None:
        try:
            existing = store.get(continue_id)
        except QARecorderError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold blue]⏺  QA Recorder[/bold blue]\n"
        f"[dim]URL:[/dim] {escape(url)}\n"
        f"[dim]Recording:[/dim] {escape(existing.title if existing else name)}"
        + (" (continuing)" if existing else "")
        + f"\n[dim]Selectors:[/dim] {', '.join(settings.recorder.selector_types)}",
        border_style="blue",
    ))

    recording = asyncio.run(_record_async(settings, url, name, existing))
    store.save(recording)
    console.print(f"[green]✓ Saved recording {recording.id} ({len(recording.steps)} steps)[/green]")


async def _record_async(
    settings: Settings,
    url: str,
    name: str,
    existing: Optional[Recording],
) -> Recording:
    playwright_ctx, browser, page = await _launch(settings)
    recorder = BrowserRecorder(settings.recorder)
    recorder.capture.on_step(
        lambda step: console.print(f"[dim]+ {step.type.value}[/dim] {escape(_describe(step))}")
    )
    try:
        await page.goto(url)
        if existing is not None:
            await recorder.continue_recording(page, existing)
        else:
            await recorder.start(page, title=name)

        console.print("[dim]Recording. Type 'p' to pick an element, Enter to stop.[/dim]")
        while True:
            command = (await asyncio.to_thread(input)).strip()
            if not command:
                break
            if command.split()[0] == "p":
                pick_name = command[1:].strip() or None
                recorder.begin_pick(pick_name)
                console.print("[cyan]Click the element to check...[/cyan]")
            elif command == "c":
                recorder.cancel_pick()
                console.print("[dim]Picking cancelled[/dim]")
            else:
                console.print(f"[yellow]⚠ Unknown command: {escape(command)}[/yellow]")

        return await recorder.stop()
    finally:
        await browser.close()
        await playwright_ctx.stop()


@app.command()
def replay(
    recording_id: int = typer.Argument(..., help="Recording id"),
    speed: Optional[str] = typer.Option(None, "--speed", help="slow, normal or fast"),
    headless: bool = typer.Option(False, "--headless", help="Run without a visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Replay a saved recording.

    Examples:
        qa-recorder replay 1712345678901
        qa-recorder replay 1712345678901 --speed fast --headless
    """
    settings = _init(config, verbose)
    settings = settings.merge_with({"browser": {"headless": headless}})
    try:
        recording = _store(settings).get(recording_id)
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    effective_speed = speed or settings.replay.speed
    if effective_speed not in settings.replay.speed_delays_ms:
        console.print(f"[red]✗ Unknown speed: {escape(effective_speed)}[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold blue]▶  QA Recorder[/bold blue]\n"
        f"[dim]Recording:[/dim] {escape(recording.title)}\n"
        f"[dim]Steps:[/dim] {len(recording.steps)}\n"
        f"[dim]Speed:[/dim] {effective_speed}",
        border_style="blue",
    ))

    run = asyncio.run(_replay_async(settings, recording, effective_speed))

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("#", width=3)
    table.add_column("Step", width=14)
    table.add_column("Target", style="dim")
    table.add_column("Status", width=10)
    table.add_column("Message", style="red")
    for i, step in enumerate(recording.steps):
        status = run.step_statuses.get(i)
        table.add_row(
            str(i),
            step.type.value,
            escape(_describe(step)[:60]),
            _STATUS_STYLES.get(status.state, "") if status else "[dim]skipped[/dim]",
            escape(status.message or "") if status else "",
        )
    console.print(table)

    if run.state == RunState.COMPLETED and not run.failed_steps:
        console.print("[green]✓ Replay completed[/green]")
        return
    console.print(f"[red]✗ Replay {run.state.value}[/red]" + (f": {escape(run.error)}" if run.error else ""))
    raise typer.Exit(1)


async def _replay_async(settings: Settings, recording: Recording, speed: str):
    playwright_ctx, browser, page = await _launch(settings)

    def report(status: StepStatus) -> None:
        if status.state == StepState.EXECUTING:
            console.print(f"[dim]▶ step {status.index}[/dim]")

    try:
        session = ReplaySession(page, settings)
        session.orchestrator.on_status(report)
        session.install()
        return await session.replay(recording, speed)
    finally:
        await browser.close()
        await playwright_ctx.stop()


@app.command("list")
def list_recordings(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """List saved recordings."""
    settings = _init(config, False)
    recordings = _store(settings).list()
    if not recordings:
        console.print("[dim]No recordings saved[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Created", style="dim")
    table.add_column("Steps", justify="right")
    for recording in recordings:
        table.add_row(str(recording.id), escape(recording.title), recording.created_at, str(len(recording.steps)))
    console.print(table)


@app.command()
def show(
    recording_id: int = typer.Argument(..., help="Recording id"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show the steps of a recording."""
    settings = _init(config, False)
    try:
        recording = _store(settings).get(recording_id)
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]{escape(recording.title)}[/bold] [dim]({recording.id}, {recording.created_at})[/dim]")
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("#", width=3)
    table.add_column("Step", width=14)
    table.add_column("Target")
    for i, step in enumerate(recording.steps):
        table.add_row(str(i), step.type.value, escape(_describe(step)))
    console.print(table)


@app.command("delete-step")
def delete_step(
    recording_id: int = typer.Argument(..., help="Recording id"),
    index: int = typer.Argument(..., help="Step index (see 'show')"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Delete one step from a saved recording."""
    settings = _init(config, False)
    try:
        step = _store(settings).delete_step(recording_id, index)
    except (QARecorderError, IndexError) as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Deleted step {index} ({step.type.value})[/green]")


@app.command()
def delete(
    recording_id: int = typer.Argument(..., help="Recording id"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Delete a saved recording."""
    settings = _init(config, False)
    try:
        _store(settings).delete(recording_id)
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Deleted recording {recording_id}[/green]")


@app.command()
def export(
    recording_id: int = typer.Argument(..., help="Recording id"),
    output: str = typer.Argument(..., help="Output JSON file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Export a recording to a JSON file."""
    settings = _init(config, False)
    try:
        recording = _store(settings).get(recording_id)
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    Path(output).write_text(export_json(recording), encoding="utf-8")
    console.print(f"[green]✓ Exported {escape(recording.title)} to {escape(output)}[/green]")


@app.command("import")
def import_recording_file(
    file_path: str = typer.Argument(..., help="Recording JSON file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Import a recording from a JSON file."""
    settings = _init(config, False)
    path = Path(file_path)
    if not path.exists():
        console.print(f"[red]✗ File not found: {escape(file_path)}[/red]")
        raise typer.Exit(1)
    try:
        recording = import_json(path.read_text(encoding="utf-8"))
    except QARecorderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    _store(settings).save(recording)
    console.print(f"[green]✓ Imported {escape(recording.title)} as {recording.id} ({len(recording.steps)} steps)[/green]")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]QA Recorder[/bold] v{__version__}")


if __name__ == "__main__":
    app()
