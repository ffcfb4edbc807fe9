"""CLI entry point for patchwise.

Commands:
  review   - run an AI review on a pull request
  prompt   - build the review conversation for a local patch and check its token budget
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from patchwise_cli.commands.prompt import prompt_cmd
from patchwise_cli.commands.review import review_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("patchwise"),
    prog_name="patchwise",
)
@click.option(
    "--config",
    "config_path",
    default=".patchwise.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PATCHWISE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline decisions (strategy fallbacks, budget checks).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Diff-aware AI code review for GitHub pull requests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(prompt_cmd)
