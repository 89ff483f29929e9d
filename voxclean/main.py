"""
Command-line interface for voxclean.

Corrects dictated text with the configured LLM provider, checks and tests
the provider configuration, and runs the pipeline test harness.
"""

from pathlib import Path
from typing import Optional, Tuple
import asyncio
import logging
import sys

import click
from rich.console import Console

from . import __version__
from .cleanup.factory import create_provider, test_connection
from .cleanup.prompts import build_whisper_args, build_whisper_prompt
from .config import compute_llm_config_hash, load_config, save_config
from .errors import VoxcleanError
from .harness.config import PIPELINE_CONFIG_ENV_VAR, load_pipeline_test_config
from .harness.report import write_reports
from .harness.results import DEFAULT_RESULTS_DIR, ResultsStore
from .harness.runner import execution_mode, run_category
from .harness.scenarios import list_categories, validate_scenarios
from .ui.terminal import TerminalUI

logger = logging.getLogger(__name__)

DEFAULT_SCENARIOS_DIR = Path("tests") / "pipeline" / "scenarios"
DEFAULT_AUDIO_DIR = Path("tests") / "pipeline" / "audio"

QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "urllib3")

config_option = click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: $VOXCLEAN_CONFIG or ~/.config/voxclean/config.json)",
)


def configure_logging(verbose: bool = False) -> None:
    """Set up root logging; HTTP client libraries stay at WARNING either way."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Their request lines carry full URLs, query-string tokens included
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _fail(ui: TerminalUI, error: Exception) -> None:
    ui.show_error(error)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """voxclean - LLM cleanup for dictated speech transcripts."""
    configure_logging(verbose)
    ctx.obj = TerminalUI(Console())


@cli.command()
@click.argument("text", required=False)
@config_option
@click.option("--force", is_flag=True, help="Use the provider even if enhancement is disabled or untested")
@click.option("--plain", is_flag=True, help="Print only the corrected text")
@click.pass_obj
def correct(ui: TerminalUI, text: Optional[str], config_path: Optional[Path], force: bool, plain: bool) -> None:
    """Correct TEXT (or standard input) with the configured provider."""
    raw_text = text if text is not None else sys.stdin.read()
    if not raw_text.strip():
        raise click.UsageError("No text to correct")

    try:
        config = load_config(config_path)
        provider = create_provider(config, for_test=force)
        corrected = asyncio.run(provider.correct(raw_text))
    except VoxcleanError as e:
        _fail(ui, e)
        return

    if plain:
        click.echo(corrected)
    else:
        ui.show_correction(raw_text.strip(), corrected, provider.get_provider_name())


@cli.command("test-connection")
@config_option
@click.pass_obj
def test_connection_command(ui: TerminalUI, config_path: Optional[Path]) -> None:
    """Send a sample phrase and remember the result on success."""
    try:
        config = load_config(config_path)
        corrected = asyncio.run(test_connection(config))
    except VoxcleanError as e:
        _fail(ui, e)
        return

    config.llm_connection_tested = True
    config.llm_config_hash = compute_llm_config_hash(config)
    saved_to = save_config(config, config_path)
    logger.info(f"Saved tested config to {saved_to}")
    ui.show_success(f"Connection OK: {corrected}")


@cli.command()
@config_option
@click.pass_obj
def check(ui: TerminalUI, config_path: Optional[Path]) -> None:
    """Report whether the selected provider is fully configured."""
    try:
        config = load_config(config_path)
    except VoxcleanError as e:
        _fail(ui, e)
        return

    if not ui.show_status(config):
        sys.exit(1)


@cli.command("whisper-prompt")
@config_option
@click.pass_obj
def whisper_prompt(ui: TerminalUI, config_path: Optional[Path]) -> None:
    """Show the language and prompt that would be handed to Whisper."""
    try:
        config = load_config(config_path)
    except VoxcleanError as e:
        _fail(ui, e)
        return

    args = build_whisper_args(config.speech_languages)
    prompt = build_whisper_prompt(config.dictionary, args.prompt_prefix)
    ui.show_lines("Whisper", [f"language: {args.language}", f"prompt ({len(prompt)} chars): {prompt}"])


@cli.group()
def pipeline() -> None:
    """Pipeline test harness."""


@pipeline.command("run")
@click.option("--category", "categories", multiple=True, help="Run only these categories (repeatable)")
@click.option("--scenarios-dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_SCENARIOS_DIR)
@click.option("--audio-dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_AUDIO_DIR)
@click.option("--results-dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_RESULTS_DIR)
@click.option(
    "--test-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help=f"Pipeline test config (default: ${PIPELINE_CONFIG_ENV_VAR})",
)
@click.pass_obj
def pipeline_run(
    ui: TerminalUI,
    categories: Tuple[str, ...],
    scenarios_dir: Path,
    audio_dir: Path,
    results_dir: Path,
    test_config: Optional[Path],
) -> None:
    """Run scenarios against the configured LLM and write reports."""
    config = load_pipeline_test_config(test_config)
    if config is None:
        raise click.UsageError(f"No pipeline test config: pass --test-config or set {PIPELINE_CONFIG_ENV_VAR}")

    selected = list(categories) or list_categories(scenarios_dir)
    mode = execution_mode(config)
    ui.console.print(f"Running {len(selected)} categories in {mode} mode")

    store = ResultsStore(results_dir)
    # A filtered run only replaces the categories it ran
    if not categories:
        store.clean()

    async def _run_all():
        # Categories run one after another, like the scenarios inside them
        for category in selected:
            store.write(await run_category(category, scenarios_dir, config, audio_dir, mode=mode))

    asyncio.run(_run_all())
    write_reports(store, console=ui.console)

    if any(not c.all_passed for c in store.read_all()):
        sys.exit(1)


@pipeline.command("validate")
@click.option("--scenarios-dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_SCENARIOS_DIR)
@click.pass_obj
def pipeline_validate(ui: TerminalUI, scenarios_dir: Path) -> None:
    """Check every scenario file against the fixture schema."""
    errors = validate_scenarios(scenarios_dir)
    ui.show_validation_errors(errors)
    if errors:
        sys.exit(1)


@pipeline.command("report")
@click.option("--results-dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_RESULTS_DIR)
@click.pass_obj
def pipeline_report(ui: TerminalUI, results_dir: Path) -> None:
    """Re-render reports from existing result files."""
    if write_reports(ResultsStore(results_dir), console=ui.console) is None:
        ui.console.print(f"No results found in {results_dir}", style="yellow")
        sys.exit(1)


if __name__ == "__main__":
    cli()
