"""Core PR review orchestration.

run_review() drives one review pass:

    fetch changed files → filter → plan_conversations() → provider.complete()
        text: one free-form review body
        xml:  parse suggestions → inline fix per suggestion → positioned comments

plan_conversations() is where the token budget is enforced. Every
conversation it returns is within the model's limit; files that cannot be
made to fit are reported, never silently dropped.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from github import GithubException
from rich.console import Console

from patchwise_core.diff import get_diff_positions, get_patch_line_content
from patchwise_core.errors import MalformedDiffError
from patchwise_core.gh.pull_request import fetch_patch_files, get_file_contents, get_pull, get_repo
from patchwise_core.models import FixRecord, PatchFile, Suggestion
from patchwise_core.output import parse_fix_records, parse_xml_review
from patchwise_core.prompts import (
    PR_SUGGESTION_TEMPLATE,
    construct_prompt,
    get_inline_fix_prompt,
    get_review_prompt,
    get_xml_review_prompt,
)
from patchwise_core.providers.anthropic import AnthropicProvider
from patchwise_core.providers.openai import GroqProvider, OpenAIProvider
from patchwise_core.strategy import build_patch_prompt, build_suggestion_prompt
from patchwise_core.tokens import get_model_limit, is_conversation_within_limit
from patchwise_core.utils.code import fence_language, is_code_file

console = Console()
logger = logging.getLogger(__name__)

CONVO_BUILDERS = {
    "text": get_review_prompt,
    "xml": get_xml_review_prompt,
}


@dataclass
class ReviewPlan:
    """Conversations ready for dispatch, plus the files that could not be placed.

    strategy is "context" when the enclosing-context rendering fit in one
    conversation, "raw" when only the plain patches did, and "split" when the
    files had to be spread over several conversations.
    """

    conversations: list[list[dict]] = field(default_factory=list)
    batches: list[list[str]] = field(default_factory=list)
    oversized: list[str] = field(default_factory=list)
    malformed: dict[str, str] = field(default_factory=dict)
    strategy: str = "context"

    def add(self, conversation: list[dict], files: list[PatchFile]) -> None:
        self.conversations.append(conversation)
        self.batches.append([f.filename for f in files])


@dataclass
class ReviewSummary:
    """Result returned by run_review."""

    repo: str
    pr_number: int
    head_sha: str
    reviewed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    comments: list[dict] = field(default_factory=list)
    review_text: str = ""
    conversations: int = 0
    posted: bool = False
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def _get_provider(config: dict):
    provider = config["provider"]
    model = config["model"]
    # Reject unknown models before any network call; the budget check needs the limit.
    get_model_limit(model)
    if provider == "groq":
        return GroqProvider(api_key=config["groq_api_key"], model=model)
    if provider == "openai":
        return OpenAIProvider(api_key=config["openai_api_key"], model=model)
    if provider == "anthropic":
        return AnthropicProvider(api_key=config["anthropic_api_key"], model=model)
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'groq', 'openai' or 'anthropic'.")


def _get_convo_builder(review_format: str):
    try:
        return CONVO_BUILDERS[review_format]
    except KeyError:
        raise ValueError(f"Unknown review format: {review_format!r}. Choose 'xml' or 'text'.") from None


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def _truncate(file: PatchFile, max_chars: int) -> PatchFile:
    """Cut an oversized patch at a line boundary.

    A truncated patch no longer matches the previous contents hunk-for-hunk,
    so the previous contents are dropped and the file is rendered raw.
    """
    if len(file.patch) <= max_chars:
        return file
    cut = file.patch.rfind("\n", 0, max_chars)
    patch = file.patch[: cut if cut > 0 else max_chars]
    logger.info("Truncated patch for %s from %d to %d chars.", file.filename, len(file.patch), len(patch))
    return PatchFile(filename=file.filename, patch=patch, old_contents=None, status=file.status)


def plan_conversations(files: list[PatchFile], convo_builder, model: str, headroom: int = 0) -> ReviewPlan:
    """Group files into conversations that fit the model's context window.

    1. All files, enclosing-context rendering.
    2. All files, raw-patch rendering.
    3. Consecutive batches of raw-patch renderings, each filled greedily.

    Raises UnknownModelError if model has no token limit.
    """
    plan = ReviewPlan()
    usable: list[PatchFile] = []
    for file in files:
        try:
            build_suggestion_prompt(file)
        except MalformedDiffError as e:
            logger.warning("Skipping %s: %s", file.filename, e)
            plan.malformed[file.filename] = str(e)
            continue
        usable.append(file)

    if not usable:
        return plan

    def fits(batch: list[PatchFile], patch_builder=build_suggestion_prompt) -> list[dict] | None:
        conversation = construct_prompt(batch, patch_builder, convo_builder)
        return conversation if is_conversation_within_limit(conversation, model, headroom) else None

    conversation = fits(usable, build_patch_prompt)
    if conversation is not None:
        plan.add(conversation, usable)
        return plan

    conversation = fits(usable)
    if conversation is not None:
        plan.strategy = "raw"
        plan.add(conversation, usable)
        return plan

    plan.strategy = "split"
    batch: list[PatchFile] = []
    batch_conversation: list[dict] | None = None
    for file in usable:
        candidate = fits(batch + [file])
        if candidate is not None:
            batch.append(file)
            batch_conversation = candidate
            continue
        if batch:
            plan.add(batch_conversation, batch)
        batch, batch_conversation = [], None
        single = fits([file])
        if single is None:
            logger.warning("%s does not fit the %s context window on its own; skipping.", file.filename, model)
            plan.oversized.append(file.filename)
        else:
            batch, batch_conversation = [file], single
    if batch:
        plan.add(batch_conversation, batch)
    return plan


def already_commented(
    existing_comments,
    file_path: str,
    file_line: int,
    comment_text: str,
    queued: set[tuple] | None = None,
) -> bool:
    """Check whether an identical comment already exists on the PR for this file+line.

    Checks both GitHub's existing review comments and any comments queued in the
    current run.
    """
    text = comment_text.strip()
    if queued is not None and (file_path, file_line, text) in queued:
        return True
    for c in existing_comments:
        # c.line is None for comments whose line no longer exists in the current diff
        # (e.g. after a force-push). Fall back to original_line in that case.
        comment_line = c.line if c.line is not None else getattr(c, "original_line", None)
        if c.path == file_path and comment_line == file_line and text in c.body.strip():
            return True
    return False


def _match_file(filename: str, files_by_name: dict[str, PatchFile]) -> PatchFile | None:
    filename = filename.strip().strip("`").lstrip("/")
    if filename in files_by_name:
        return files_by_name[filename]
    # The model sometimes shortens or prefixes paths; accept an unambiguous suffix match.
    matches = [
        f for name, f in files_by_name.items() if name.endswith("/" + filename) or filename.endswith("/" + name)
    ]
    return matches[0] if len(matches) == 1 else None


def request_fixes(provider, model: str, headroom: int, file_contents: str, suggestion: Suggestion) -> list[FixRecord]:
    """Ask the model for line-level fixes implementing one suggestion."""
    conversation = get_inline_fix_prompt(file_contents, suggestion)
    if not is_conversation_within_limit(conversation, model, headroom):
        logger.warning("Inline fix prompt for %s exceeds the %s context window.", suggestion.filename, model)
        return []
    raw = provider.complete(conversation)
    if raw is None:
        return []
    return parse_fix_records(raw)


def _comment(file: PatchFile, line: int, position: int, comment: str, code: str) -> dict:
    code = code.strip("\n")
    if not code.strip():
        fenced = ""
    elif code.lstrip().startswith("```"):
        fenced = code.strip()
    else:
        fenced = f"```{fence_language(file.filename)}\n{code}\n```"
    return {
        "path": file.filename,
        "position": position,
        "line": line,
        "body": PR_SUGGESTION_TEMPLATE.format(COMMENT=comment.strip(), CODE=fenced).strip(),
        "code": get_patch_line_content(file.patch, line),
    }


def suggestions_to_comments(
    suggestions: list[Suggestion],
    files: list[PatchFile],
    existing_comments: list,
    fetch_contents=None,
    provider=None,
    model: str = "",
    headroom: int = 0,
) -> list[dict]:
    """Turn parsed suggestions into positioned review comments.

    With a provider and fetch_contents (filename → head contents), each
    suggestion is expanded into inline fixes placed on their last line.
    Otherwise, or when no fix lands inside the diff, the suggestion itself is
    placed on the first added line of its file.
    """
    files_by_name = {f.filename: f for f in files}
    contents_cache: dict[str, str | None] = {}
    queued: set[tuple] = set()
    comments: list[dict] = []

    def add(file: PatchFile, line: int, text: str, code: str) -> bool:
        positions = get_diff_positions(file.patch)
        if line not in positions:
            logger.debug("Skipping comment for %s line %d (not in diff positions)", file.filename, line)
            return False
        if already_commented(existing_comments, file.filename, line, text, queued):
            logger.debug("Skipping duplicate comment for %s line %d", file.filename, line)
            return False
        comments.append(_comment(file, line, positions[line], text, code))
        queued.add((file.filename, line, text.strip()))
        return True

    for suggestion in suggestions:
        file = _match_file(suggestion.filename, files_by_name)
        if file is None:
            logger.debug("Suggestion refers to a file outside the diff: %s", suggestion.filename)
            continue

        placed = False
        if provider is not None and fetch_contents is not None:
            if file.filename not in contents_cache:
                contents_cache[file.filename] = fetch_contents(file.filename)
            contents = contents_cache[file.filename]
            if contents is not None:
                for fix in request_fixes(provider, model, headroom, contents, suggestion):
                    placed = add(file, fix.line_end, fix.comment or suggestion.comment, fix.code) or placed

        if not placed:
            added_lines = sorted(get_diff_positions(file.patch))
            if added_lines:
                add(file, added_lines[0], suggestion.comment, suggestion.code)

    return comments


def print_shadow_comments(comments: list[dict]) -> None:
    """Print review comments to the terminal without posting to GitHub."""
    if not comments:
        console.print("[yellow]Shadow mode: no comments generated.[/yellow]")
        return
    console.print(f"\n[bold]Shadow review: {len(comments)} comment(s) (not posted)[/bold]\n")
    for c in comments:
        console.print(f"[bold cyan]{c['path']}[/bold cyan]  line [bold]{c['line']}[/bold]")
        code = c.get("code", "").strip()
        if code:
            console.print(f"  [dim]{code}[/dim]")
        console.print(f"  {c['body']}", markup=False)
        console.print()


def _build_summary(reviewed: list[str], skipped: list[str], comments: list[dict], plan: ReviewPlan) -> str:
    lines = ["## Review summary\n"]
    lines.append(
        f"**{len(reviewed)}** file(s) reviewed"
        + (f", **{len(skipped)}** skipped" if skipped else "")
        + f" · **{len(comments)}** comment(s)"
    )
    if plan.strategy == "split":
        lines.append(f"\n_The diff was split over {len(plan.conversations)} requests to fit the model's context._")
    if plan.oversized:
        lines.append("\n**Too large to review:**")
        lines.extend(f"- `{name}`" for name in plan.oversized)
    if plan.malformed:
        lines.append("\n**Unusable patch:**")
        lines.extend(f"- `{name}`: {error}" for name, error in plan.malformed.items())
    return "\n".join(lines)


def _confirm(question: str, auto_confirm: bool) -> bool:
    if auto_confirm:
        return True
    return input(f"{question} (y/n): ").strip().lower() == "y"


def run_review(
    repo: str,
    pr_number: int,
    config: dict,
    auto_confirm: bool = False,
    shadow: bool = False,
    repo_obj=None,
) -> ReviewSummary | None:
    """Run the full PR review pipeline and return a ReviewSummary.

    Returns None when the PR is a draft and drafts are not reviewed.
    Raises UnknownModelError if the configured model has no token limit.
    """
    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])

    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise ValueError(f"PR #{pr_number} not found in {repo}.")

    if this_pr.draft and not config.get("review_draft_prs", False):
        console.print(
            "[yellow]Skipping draft PR. Set review_draft_prs: true in .patchwise.yml to review drafts.[/yellow]"
        )
        return None

    head_sha = this_pr.head.sha
    review_format = config.get("review_format", "xml")
    convo_builder = _get_convo_builder(review_format)
    provider = _get_provider(config)
    model = config["model"]
    headroom = config.get("token_headroom", 0)
    max_chars = config.get("max_chars_per_file", 20000)
    exclude_patterns = config.get("exclude", [])

    files: list[PatchFile] = []
    skipped: list[str] = []
    for file in fetch_patch_files(this_repo, this_pr):
        if _is_excluded(file.filename, exclude_patterns) or not is_code_file(file.filename):
            console.print(f"  Skipping: {file.filename}")
            skipped.append(file.filename)
            continue
        files.append(_truncate(file, max_chars))

    plan = plan_conversations(files, convo_builder, model, headroom)
    for name, error in plan.malformed.items():
        console.print(f"  [red]Unusable patch for {name}: {error}[/red]")
    for name in plan.oversized:
        console.print(f"  [yellow]Too large for {model}: {name}[/yellow]")
    skipped.extend(plan.malformed)
    skipped.extend(plan.oversized)

    summary = ReviewSummary(repo=repo, pr_number=pr_number, head_sha=head_sha, skipped_files=skipped)
    if not plan.conversations:
        console.print("[yellow]Nothing to review.[/yellow]")
        return summary

    console.print(
        f"\nSending {len(plan.conversations)} request(s) to [bold]{model}[/bold] "
        f"({plan.strategy} rendering, {sum(len(b) for b in plan.batches)} file(s))"
    )
    responses: list[str] = []
    for index, (conversation, batch) in enumerate(zip(plan.conversations, plan.batches), 1):
        raw = provider.complete(conversation)
        summary.conversations += 1
        if raw is None:
            console.print(
                f"  [red]Request {index}/{len(plan.conversations)} failed; skipping {len(batch)} file(s).[/red]"
            )
            summary.skipped_files.extend(batch)
            continue
        responses.append(raw)
        summary.reviewed_files.extend(batch)

    if review_format == "text":
        summary.review_text = "\n\n".join(r.strip() for r in responses if r.strip())
        if shadow:
            console.print(summary.review_text or "[yellow]Shadow mode: the model returned no review.[/yellow]")
            return summary
        if summary.review_text and _confirm("Post the review as a PR comment?", auto_confirm):
            this_pr.create_review(body=summary.review_text, event="COMMENT")
            summary.posted = True
            console.print("\n[green]Review posted.[/green]")
        return summary

    suggestions = [s for raw in responses for s in parse_xml_review(raw)]
    console.print(f"  {len(suggestions)} suggestion(s) found.")
    reviewed_files = [f for f in files if f.filename in summary.reviewed_files]
    inline_fixes = config.get("inline_fixes", True)
    summary.comments = suggestions_to_comments(
        suggestions,
        reviewed_files,
        list(this_pr.get_review_comments()),
        fetch_contents=(lambda path: get_file_contents(this_repo, path, head_sha)) if inline_fixes else None,
        provider=provider if inline_fixes else None,
        model=model,
        headroom=headroom,
    )

    if shadow:
        print_shadow_comments(summary.comments)
        return summary

    if not summary.comments:
        console.print("[green]No suggestions to post.[/green]")
        return summary

    if not _confirm(f"Post {len(summary.comments)} comment(s)?", auto_confirm):
        return summary

    body = _build_summary(summary.reviewed_files, summary.skipped_files, summary.comments, plan)
    api_comments = [{"path": c["path"], "position": c["position"], "body": c["body"]} for c in summary.comments]
    this_pr.create_review(body=body, event="COMMENT", comments=api_comments)
    summary.posted = True
    console.print(f"\n[green]Review posted with {len(summary.comments)} comment(s).[/green]")
    return summary
