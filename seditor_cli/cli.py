"""Typer-based CLI for the Seditor multi-stage editing pipeline."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table

from . import __version__, config
from .chat_session import ConversationStore, RunRegistry, storage_key_for
from .cli_setup import set_llm, setup as setup_wizard, show_llm, unset_llm
from .diff_engine import DiffEngine
from .errors import LLMServiceError, RunInProgressError, UserInputError
from .llm import LLMClient
from .models import RunResult, SourceDocument
from .pipeline import EditPipeline

app = typer.Typer(
    help="✏️  Seditor CLI: plan, analyse and rewrite a file with an LLM, one validated step at a time.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register setup wizard as direct command
app.command("setup")(setup_wizard)

# Register LLM management commands
app.command("set-llm")(set_llm)
app.command("unset-llm")(unset_llm)
app.command("show-llm")(show_llm)

console = Console()
RUNS = RunRegistry()

FAILED_CALL_PREFIX = "Failed to call the model"
NO_PATCH_MESSAGE = "The model did not produce an automatic patch. Review the steps for details."
CANCELLED_MESSAGE = "The analysis was cancelled."
UNEXPECTED_ERROR_PREFIX = "The analysis stopped unexpectedly"


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Seditor CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every pipeline stage."),
):
    """Seditor CLI: staged, validated LLM edits for HTML documents."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _print_status(emoji: str, msg: str, style: str = "dim"):
    console.print(f"  [{style}]{emoji}  {msg}[/{style}]")


def _store() -> ConversationStore:
    return ConversationStore(config.CONVERSATIONS_DIR)


def _diff_engine() -> DiffEngine:
    return DiffEngine(config.BACKUPS_DIR)


def _print_result(result: RunResult, show_prompts: bool):
    console.print()
    console.print(Rule("Steps", style="dim"))
    for number, step in enumerate(result.steps, 1):
        if show_prompts:
            console.print(Panel(step.body, title=f"{number}. {step.title}", title_align="left", border_style="cyan"))
        else:
            first_line = step.body.strip().splitlines()[0] if step.body.strip() else ""
            console.print(f"  [cyan]{number}.[/cyan] [bold]{step.title}[/bold]  [dim]{first_line[:80]}[/dim]", highlight=False)

    console.print()
    console.print(Panel(result.summary, title="Summary", title_align="left", border_style="green" if result.has_change else "yellow"))
    for note in result.notes:
        console.print(f"  [dim]•[/dim] {note}", highlight=False)
    console.print()


@app.command("run")
def run_instruction(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document to edit."),
    instruction: str = typer.Argument(..., help="What to change, in plain language."),
    apply: bool = typer.Option(False, "--apply", "-y", help="Apply the proposed change immediately."),
    as_json: bool = typer.Option(False, "--json", help="Print the run result as JSON."),
    show_prompts: bool = typer.Option(False, "--show-prompts", help="Print the full prompt and response of every step."),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="LLM provider override."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name override."),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="API key override."),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature."),
    top_p: Optional[float] = typer.Option(None, "--top-p", help="Nucleus sampling threshold."),
    pace: Optional[float] = typer.Option(None, "--pace", help="Seconds to pause before each stage."),
):
    """Run the full plan → analyse → generate → validate pipeline on FILE."""
    if not instruction.strip():
        raise typer.BadParameter("The instruction must not be empty.")

    try:
        client = LLMClient(
            model=model,
            provider=provider,
            api_key=api_key,
            temperature=temperature,
            top_p=top_p,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    document = SourceDocument.from_path(file_path)
    store = _store()
    key = storage_key_for(file_path)
    state = store.load(key)

    try:
        with RUNS.running(key):
            placeholder_id = state.begin_analysis(instruction.strip())
            store.save(key, state)
            started = time.monotonic()

            with console.status("Preparing the initial analysis...", spinner="dots") as spinner:
                def on_status(label: str):
                    state.update_status(placeholder_id, label)
                    spinner.update(label)

                pipeline = EditPipeline(
                    client,
                    on_status_update=on_status,
                    pace_seconds=config.PACE_SECONDS if pace is None else pace,
                    not_relevant_marker=config.NOT_RELEVANT_MARKER,
                    snapshot_chars=config.SNAPSHOT_CHARS,
                )
                try:
                    result = pipeline.run(instruction, document)
                except LLMServiceError as exc:
                    state.fail_analysis(placeholder_id, f"{FAILED_CALL_PREFIX}: {exc}")
                    store.save(key, state)
                    _print_status("❌", f"{FAILED_CALL_PREFIX}: {exc}", "red")
                    raise typer.Exit(code=1)
                except UserInputError as exc:
                    state.fail_analysis(placeholder_id, str(exc))
                    store.save(key, state)
                    _print_status("❌", str(exc), "red")
                    raise typer.Exit(code=1)
                except KeyboardInterrupt:
                    state.fail_analysis(placeholder_id, CANCELLED_MESSAGE)
                    store.save(key, state)
                    _print_status("⏹", CANCELLED_MESSAGE, "yellow")
                    raise typer.Exit(code=130)
                except Exception as exc:
                    state.fail_analysis(placeholder_id, f"{UNEXPECTED_ERROR_PREFIX}: {exc}")
                    store.save(key, state)
                    raise

            state.complete_analysis(placeholder_id, result, duration=time.monotonic() - started)
            store.save(key, state)
    except RunInProgressError as exc:
        _print_status("⏳", str(exc), "yellow")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result, show_prompts)

    if not result.has_change:
        if not as_json:
            _print_status("⚠️", NO_PATCH_MESSAGE, "yellow")
        return

    if not as_json:
        diff = _diff_engine().preview_change(file_path, result.change)
        if diff:
            console.print(Syntax(diff, "diff", theme="ansi_dark"))
        else:
            _print_status("ℹ️", "The proposed change is identical to the current file.")

    if apply:
        _apply(file_path, backup=True)
    elif not as_json:
        _print_status("💡", f"Run 'seditor apply {file_path}' to write the change.")


def _apply(file_path: Path, backup: bool):
    store = _store()
    key = storage_key_for(file_path)
    state = store.load(key)
    change = state.effective_pending_change()
    if change is None:
        _print_status("📋", "No pending change for this file.", "yellow")
        raise typer.Exit(code=1)

    result = _diff_engine().apply_to_file(file_path, change, backup=backup)
    if not result.success:
        _print_status("❌", f"Could not apply the change: {result.error}", "red")
        raise typer.Exit(code=1)

    state.apply_pending()
    store.save(key, state)
    _print_status("✅", f"Changes applied to {file_path}.", "green")
    if result.backup_id:
        _print_status("💾", f"Backup: {result.backup_id}  (undo with 'seditor rollback {result.backup_id}')")


@app.command("apply")
def apply_pending(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document with a pending change."),
    no_backup: bool = typer.Option(False, "--no-backup", help="Do not back up the file before writing."),
):
    """Write the pending change for FILE to disk."""
    _apply(file_path, backup=not no_backup)


@app.command("preview")
def preview(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document with a pending change."),
):
    """Show the pending change for FILE as a unified diff."""
    change = _store().load(storage_key_for(file_path)).effective_pending_change()
    if change is None:
        _print_status("📋", "No pending change for this file.", "yellow")
        raise typer.Exit(code=0)

    diff = _diff_engine().preview_change(file_path, change)
    if diff:
        console.print(Syntax(diff, "diff", theme="ansi_dark"))
    else:
        _print_status("ℹ️", "The pending change is identical to the current file.")


@app.command("history")
def history(
    file_path: Path = typer.Argument(..., dir_okay=False, help="Document whose conversation to show."),
):
    """Show the conversation log for FILE."""
    state = _store().load(storage_key_for(file_path))

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Role", style="dim")
    table.add_column("Kind")
    table.add_column("Message")
    table.add_column("Applied", justify="center")
    for message in state.messages:
        text = message.text.strip().replace("\n", " ")
        table.add_row(
            message.role,
            message.kind,
            text[:100] + ("…" if len(text) > 100 else ""),
            "✓" if message.applied else "",
        )
    console.print(table)
    if state.effective_pending_change() is not None:
        _print_status("📋", "A change is pending. Use 'seditor preview' or 'seditor apply'.", "yellow")


@app.command("clear")
def clear(
    file_path: Path = typer.Argument(..., dir_okay=False, help="Document whose conversation to reset."),
):
    """Reset the conversation (and any pending change) for FILE."""
    _store().clear(storage_key_for(file_path))
    _print_status("🧹", "Conversation cleared.")


@app.command("backups")
def backups():
    """List file backups created by 'seditor apply'."""
    entries = _diff_engine().list_backups()
    if not entries:
        _print_status("📦", "No backups found.", "yellow")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Backup ID")
    table.add_column("Created", style="dim")
    table.add_column("File")
    for entry in entries:
        files = ", ".join(f["original"] for f in entry.get("files", []))
        table.add_row(entry["backup_id"], entry["timestamp"], files)
    console.print(table)


@app.command("rollback")
def rollback(
    backup_id: str = typer.Argument(..., help="Backup ID from 'seditor backups'."),
):
    """Restore a file from a backup."""
    if _diff_engine().rollback(backup_id):
        _print_status("⏪", f"Restored backup {backup_id}.", "green")
    else:
        _print_status("❌", f"Backup '{backup_id}' not found or could not be restored.", "red")
        raise typer.Exit(code=1)
