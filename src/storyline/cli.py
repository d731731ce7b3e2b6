"""CLI interface for storyline."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from storyline.config import StorylineConfig, load_config, merge_cli_overrides
from storyline.goals import complete_goal, create_goal
from storyline.shared.csrf import CsrfTokens
from storyline.shared.errors import StoryError
from storyline.store import Database, PostStatus
from storyline.story import StoryService

app = typer.Typer(
    name="storyline",
    help="Generate, cache and share AI growth stories from journal posts.",
    no_args_is_help=True,
)
story_app = typer.Typer(help="Read, generate and share stories.", no_args_is_help=True)
app.add_typer(story_app, name="story")

console = Console()


class _State:
    def __init__(self, config: StorylineConfig) -> None:
        self.config = config
        self._db: Database | None = None

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = Database(self.config.database.url, echo=self.config.database.echo)
        return self._db

    def tokens(self) -> CsrfTokens:
        # A local operator without a configured secret still needs a
        # consistent issuer/validator pair for this process.
        secret = self.config.security.csrf_secret or secrets.token_hex(32)
        return CsrfTokens(secret, self.config.security.csrf_ttl_seconds)


def _state(ctx: typer.Context) -> _State:
    return ctx.obj


def _fail(exc: StoryError) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc.code}: {exc}")
    raise typer.Exit(1)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from storyline import __version__

        console.print(f"storyline {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .storyline.toml file."),
    ] = None,
    database_url: Annotated[
        Optional[str],
        typer.Option("--db", help="SQLAlchemy database URL."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Model override (sonnet, haiku, opus or a full ID)."),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING...)."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Storyline - AI growth stories from journal posts and goals."""
    config = merge_cli_overrides(
        load_config(config_path),
        database_url=database_url,
        model=model,
        log_level=log_level,
    )
    level = config.logging.level.upper()
    if level not in logging.getLevelNamesMapping():
        console.print(f"[red]Error:[/red] Unknown log level: {config.logging.level}")
        raise typer.Exit(1)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _State(config)


# ---------------------------------------------------------------------------
# Seeding commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create the database schema."""
    db = _state(ctx).db
    console.print(f"[green]Database ready:[/green] {db.url}")


@app.command("add-user")
def add_user(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Display name.")],
    role: Annotated[Optional[str], typer.Option("--role", help="Current role.")] = None,
    industry: Annotated[Optional[str], typer.Option("--industry")] = None,
    skill: Annotated[
        Optional[list[str]], typer.Option("--skill", help="Current skill (repeatable).")
    ] = None,
    target_skill: Annotated[
        Optional[list[str]], typer.Option("--target-skill", help="Target skill (repeatable).")
    ] = None,
) -> None:
    """Create a user and print their id."""
    user = _state(ctx).db.create_user(
        name,
        created_at=datetime.now(),
        current_role=role,
        industry=industry,
        current_skills=skill or [],
        target_skills=target_skill or [],
    )
    console.print(user.id)


@app.command("add-post")
def add_post(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Author id.")],
    title: Annotated[str, typer.Argument()],
    content: Annotated[str, typer.Argument()],
    draft: Annotated[bool, typer.Option("--draft", help="Save as draft.")] = False,
) -> None:
    """Add a journal post."""
    post = _state(ctx).db.add_post(
        user_id,
        title,
        content,
        created_at=datetime.now(),
        status=PostStatus.DRAFT if draft else PostStatus.PUBLISHED,
    )
    console.print(post.id)


@app.command("add-goal")
def add_goal(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    title: Annotated[str, typer.Argument()],
    period: Annotated[str, typer.Argument(help="daily, weekly, monthly, quarterly or yearly.")],
) -> None:
    """Create an active goal."""
    try:
        goal = create_goal(_state(ctx).db, user_id, title, period, datetime.now())
    except StoryError as exc:
        _fail(exc)
    console.print(f"{goal.id} (deadline {goal.deadline:%Y-%m-%d %H:%M})")


@app.command("complete-goal")
def complete_goal_cmd(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    goal_id: Annotated[str, typer.Argument()],
) -> None:
    """Mark an active goal as completed."""
    if not complete_goal(_state(ctx).db, user_id, goal_id, datetime.now()):
        console.print("[yellow]No matching active goal.[/yellow]")
        raise typer.Exit(1)
    console.print("[green]Goal completed.[/green]")


@app.command("goals")
def goals(
    ctx: typer.Context,
    target_user_id: Annotated[str, typer.Argument(help="Whose goals to list.")],
    as_user: Annotated[
        Optional[str], typer.Option("--as", help="Requesting user id (owner sees all).")
    ] = None,
) -> None:
    """List a user's goals as seen by the requester."""
    state = _state(ctx)
    service = StoryService(state.db, state.config, state.tokens())
    found = service.list_user_goals(as_user, target_user_id)
    if not found:
        console.print("[yellow]No goals to show.[/yellow]")
        return

    table = Table("Period", "Title", "Status", "Deadline")
    for goal in found:
        table.add_row(goal.period.value, goal.title, goal.status.value, f"{goal.deadline:%Y-%m-%d}")
    console.print(table)


@app.command("token")
def token(ctx: typer.Context) -> None:
    """Issue a request token for mutating calls."""
    console.print(_state(ctx).tokens().issue(), soft_wrap=True)


@app.command("reset-quota")
def reset_quota(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
) -> None:
    """Give a user back today's full generation allowance."""
    db = _state(ctx).db
    if db.get_user(user_id) is None:
        console.print(f"[red]Error:[/red] USER_NOT_FOUND: User not found: {user_id}")
        raise typer.Exit(1)
    db.set_quota_state(user_id, 0, None)
    console.print("[green]Quota reset.[/green]")


# ---------------------------------------------------------------------------
# Story commands
# ---------------------------------------------------------------------------


def _print_remaining(service: StoryService, user_id: str) -> None:
    left = service.remaining_generations(user_id)
    console.print(f"[dim]{left} generations left today[/dim]")


def _service_with_token(ctx: typer.Context, token: str | None) -> tuple[StoryService, str]:
    state = _state(ctx)
    tokens = state.tokens()
    return StoryService(state.db, state.config, tokens), token or tokens.issue()


@story_app.command("show")
def story_show(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    period: Annotated[str, typer.Argument(help="daily, weekly, monthly, yearly or all.")],
) -> None:
    """Show the cached story for a user, with staleness."""
    state = _state(ctx)
    service = StoryService(state.db, state.config, state.tokens())
    try:
        cached = service.resolve_and_get_cached_story(user_id, period)
    except StoryError as exc:
        _fail(exc)

    if cached is None:
        console.print("[yellow]No story yet. Run 'storyline story generate'.[/yellow]")
        return

    console.print(Markdown(cached.story.content))
    console.print(f"\n[dim]Updated {cached.story.updated_at:%Y-%m-%d %H:%M}[/dim]")
    if cached.is_stale:
        console.print("[yellow]This story is stale. Consider regenerating it.[/yellow]")
    _print_remaining(service, user_id)


@story_app.command("public")
def story_public(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    period: Annotated[str, typer.Argument()],
) -> None:
    """Show any user's story for a period."""
    state = _state(ctx)
    service = StoryService(state.db, state.config, state.tokens())
    try:
        story = service.get_public_story(user_id, period)
    except StoryError as exc:
        _fail(exc)
    if story is None:
        console.print("[yellow]No story for this period.[/yellow]")
        return
    console.print(Markdown(story.content))


@story_app.command("generate")
def story_generate(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    period: Annotated[str, typer.Argument()],
    tone: Annotated[
        str, typer.Option("--tone", "-t", help="low, medium, harsh or brutal.")
    ] = "medium",
    token: Annotated[
        Optional[str], typer.Option("--token", help="Request token (issued if omitted).")
    ] = None,
) -> None:
    """Generate or regenerate a story."""
    service, proof = _service_with_token(ctx, token)
    try:
        result = service.generate_story(user_id, period, tone, proof)
    except StoryError as exc:
        _fail(exc)
    console.print(Markdown(result.content))
    console.print(f"\n[green]Saved[/green] at {result.updated_at:%Y-%m-%d %H:%M:%S}")
    _print_remaining(service, user_id)


@story_app.command("share")
def story_share(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
    period: Annotated[str, typer.Argument()],
    token: Annotated[
        Optional[str], typer.Option("--token", help="Request token (issued if omitted).")
    ] = None,
) -> None:
    """Publish the current story generation to the feed."""
    service, proof = _service_with_token(ctx, token)
    try:
        post_id = service.share_story_to_feed(user_id, period, proof)
    except StoryError as exc:
        _fail(exc)
    console.print(f"[green]Shared as post[/green] {post_id}")


@story_app.command("feed")
def story_feed(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument()],
) -> None:
    """List a user's stories shared to the feed, newest first."""
    state = _state(ctx)
    service = StoryService(state.db, state.config, state.tokens())
    posts = service.list_shared_stories(user_id)
    if not posts:
        console.print("[yellow]No shared stories.[/yellow]")
        return

    table = Table("Shared", "Title", "Post")
    for post in posts:
        table.add_row(f"{post.created_at:%Y-%m-%d %H:%M}", post.title, post.id)
    console.print(table)


if __name__ == "__main__":
    app()
