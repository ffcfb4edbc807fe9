"""review command: run an AI review on a pull request."""

from __future__ import annotations

import click
from rich.console import Console

from patchwise_core.config import api_key_env_var
from patchwise_core.errors import UnknownModelError
from patchwise_core.gh.pull_request import get_pull_requests, get_repo
from patchwise_core.reviewer import CONVO_BUILDERS, run_review

console = Console()


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--provider",
    type=click.Choice(["groq", "openai", "anthropic"]),
    default=None,
    help="Model provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model identifier, e.g. llama3-70b-8192. Overrides config file.")
@click.option(
    "--format",
    "review_format",
    type=click.Choice(sorted(CONVO_BUILDERS)),
    default=None,
    help="xml: inline suggestions with fixes; text: a single review comment. Overrides config file.",
)
@click.option("--no-fixes", is_flag=True, help="Post XML suggestions as-is without requesting inline fixes.")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts.")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the review without posting to GitHub.",
)
@click.pass_context
def review_cmd(
    ctx,
    repo: str,
    pr_number: int | None,
    provider: str | None,
    model: str | None,
    review_format: str | None,
    no_fixes: bool,
    yes: bool,
    shadow: bool,
):
    """Review a GitHub pull request and post the findings.

    Each changed file is rendered with the enclosing function or class of its
    changes when the previous version parses, and as a plain numbered patch
    otherwise. The conversation is checked against the model's context window
    before it is sent.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      GROQ_API_KEY         Required when using --provider groq
      OPENAI_API_KEY       Required when using --provider openai
      ANTHROPIC_API_KEY    Required when using --provider anthropic
    """
    from patchwise_cli.auth import resolve_github_token
    from patchwise_core.config import load_config

    config_path = (ctx.obj or {}).get("config_path", ".patchwise.yml")
    config = load_config(
        config_path,
        cli_overrides={
            "provider": provider,
            "model": model,
            "review_format": review_format,
            "inline_fixes": False if no_fixes else None,
        },
    )

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    env_var = api_key_env_var(config["provider"])
    if env_var is None:
        raise click.UsageError(f"Unknown provider {config['provider']!r}. Choose groq, openai or anthropic.")
    if not config.get(f"{config['provider']}_api_key"):
        raise click.UsageError(f"{env_var} environment variable is not set.")

    this_repo = get_repo(repo, token=token)

    if pr_number is None:
        prs = list(get_pull_requests(this_repo))
        if not prs:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in prs:
            console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    try:
        summary = run_review(
            repo=repo,
            pr_number=pr_number,
            config=config,
            auto_confirm=yes,
            shadow=shadow,
            repo_obj=this_repo,
        )
    except UnknownModelError as e:
        raise click.UsageError(str(e))
    except ValueError as e:
        raise click.ClickException(str(e))

    if summary is not None and summary.skipped_files:
        console.print(f"[dim]Skipped: {', '.join(summary.skipped_files)}[/dim]")
