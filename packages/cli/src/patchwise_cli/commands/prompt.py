"""prompt command: assemble the review conversation for a local patch."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from patchwise_core.errors import MalformedDiffError, UnknownModelError
from patchwise_core.models import PatchFile
from patchwise_core.prompts import construct_prompt
from patchwise_core.reviewer import CONVO_BUILDERS
from patchwise_core.strategy import build_patch_prompt
from patchwise_core.tokens import count_conversation_tokens, get_model_limit, is_conversation_within_limit

console = Console()


@click.command("prompt")
@click.option(
    "--diff",
    "diff_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Unified diff of a single file.",
)
@click.option("--filename", default=None, help="Path of the changed file. Defaults to the diff file's name.")
@click.option(
    "--old",
    "old_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Previous version of the file. Enables enclosing-context rendering.",
)
@click.option("--model", default=None, help="Model whose context window the conversation is checked against.")
@click.option(
    "--format",
    "review_format",
    type=click.Choice(sorted(CONVO_BUILDERS)),
    default=None,
    help="Review prompt variant.",
)
@click.option("--system/--no-system", "show_system", default=False, help="Also print the system prompt.")
@click.pass_context
def prompt_cmd(
    ctx,
    diff_path: Path,
    filename: str | None,
    old_path: Path | None,
    model: str | None,
    review_format: str | None,
    show_system: bool,
):
    """Print the conversation patchwise would send for a local patch.

    Exits with status 1 when the conversation does not fit the model's
    context window.
    """
    from patchwise_core.config import load_config

    config_path = (ctx.obj or {}).get("config_path", ".patchwise.yml")
    config = load_config(config_path, cli_overrides={"model": model, "review_format": review_format})

    file = PatchFile(
        filename=filename or diff_path.stem,
        patch=diff_path.read_text(encoding="utf-8", errors="replace"),
        old_contents=old_path.read_text(encoding="utf-8", errors="replace") if old_path else None,
    )

    try:
        limit = get_model_limit(config["model"])
    except UnknownModelError as e:
        raise click.UsageError(str(e))

    convo_builder = CONVO_BUILDERS.get(config["review_format"])
    if convo_builder is None:
        raise click.UsageError(f"Unknown review format: {config['review_format']!r}.")

    try:
        conversation = construct_prompt([file], build_patch_prompt, convo_builder)
    except MalformedDiffError as e:
        raise click.ClickException(f"Unusable patch: {e}")

    for message in conversation:
        if message["role"] == "system" and not show_system:
            continue
        console.print(Panel(Text(message["content"]), title=message["role"], expand=False))

    headroom = config.get("token_headroom", 0)
    tokens = count_conversation_tokens(conversation)
    fits = is_conversation_within_limit(conversation, config["model"], headroom)
    colour = "green" if fits else "red"
    console.print(
        f"[{colour}]~{tokens} tokens (+{headroom} headroom) of {limit} for {config['model']}: "
        f"{'fits' if fits else 'too large'}[/{colour}]"
    )
    if not fits:
        ctx.exit(1)
