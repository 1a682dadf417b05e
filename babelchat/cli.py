"""
Command-line interface for BabelChat.

Provides commands for:
- Accounts (signup, login, logout, whoami, users)
- Messaging (send, history, forward, delete-message)
- Conversation list management (chats, read, pin, archive, category, delete)
- Stars, reactions and blocking
- Groups
- The translation stub (translate, detect, languages)
- Maintenance (reconcile, doctor, config)

Usage:
    babelchat signup alice --password secret --language en
    babelchat send --to user_1700000000000 "Hello"
    babelchat chats
    babelchat history user_1700000000000
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from babelchat import __version__
from babelchat.accounts import AccountService
from babelchat.config import APP_NAME, HOME_ENV_VAR, ChatConfig, ensure_dirs
from babelchat.diagnostics import collect_diagnostics, summarize_checks
from babelchat.groups import GroupService
from babelchat.languages import SUPPORTED_LANGUAGES, get_language_name
from babelchat.log import setup_logging
from babelchat.manager import ConversationManager
from babelchat.models import ChatTarget, Message, User
from babelchat.preferences import PreferenceService
from babelchat.repository import ChatRepository
from babelchat.results import Result
from babelchat.store import JsonFileStore
from babelchat.translate import create_detector, create_translator

app = typer.Typer(
    name="babelchat",
    help="BabelChat: local multilingual chat with per-recipient translation",
    add_completion=False,
)
console = Console()

_state: dict = {"home": None}


def version_callback(value: bool):
    if value:
        console.print(f"{APP_NAME} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    home: Optional[Path] = typer.Option(
        None, "--home",
        envvar=HOME_ENV_VAR,
        help="Data directory (default ~/.babelchat)",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging",
    ),
):
    """BabelChat: every message rendered in each reader's language."""
    _state["home"] = home
    setup_logging(verbose)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _store_path() -> Path:
    home = _state.get("home")
    if home is None:
        return ensure_dirs()
    path = Path(home).expanduser() / "store"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _repo() -> ChatRepository:
    return ChatRepository(JsonFileStore(_store_path()))


def _fail(result: Result) -> None:
    console.print(f"[red]Error:[/] {result.error}", style="bold")
    raise typer.Exit(1)


def _check(result: Result) -> Result:
    if not result.ok:
        _fail(result)
    return result


def _session(repo: ChatRepository) -> tuple[AccountService, User]:
    accounts = AccountService(repo)
    restored = _check(accounts.restore_session())
    if restored.value is None:
        console.print("[red]Error:[/] Not signed in. Run 'babelchat login' first.", style="bold")
        raise typer.Exit(1)
    return accounts, restored.value


def _manager(repo: ChatRepository, user: User) -> ConversationManager:
    manager = ConversationManager(repo, user, ChatConfig.from_env())
    manager.reconcile()
    return manager


def _when(ms: int) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _target(to: Optional[str], group: Optional[str]) -> ChatTarget:
    if bool(to) == bool(group):
        console.print("[red]Error:[/] Provide exactly one of --to or --group", style="bold")
        raise typer.Exit(1)
    return ChatTarget(user_id=to, group_id=group)


def _find_message(manager: ConversationManager, chat_id: str, message_id: str) -> Message:
    messages = manager.load_messages(chat_id).value
    message = next((m for m in messages if m.id == message_id), None)
    if message is None:
        console.print(f"[red]Error:[/] No message {message_id} in {chat_id}", style="bold")
        raise typer.Exit(1)
    return message


# ----------------------------------------------------------------------
# Accounts
# ----------------------------------------------------------------------

@app.command()
def signup(
    username: str = typer.Argument(..., help="Unique username"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name (defaults to username)"),
    language: str = typer.Option("en", "--language", "-l", help="Preferred language code"),
):
    """Create an account and sign in."""
    result = _check(AccountService(_repo()).signup(username, password, name or username, language))
    user = result.value
    console.print(f"[green]Welcome, {user.display_name}![/] Your id is [cyan]{user.id}[/] ({get_language_name(language)})")


@app.command()
def login(
    username: str = typer.Argument(...),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Sign in to an existing account."""
    user = _check(AccountService(_repo()).login(username, password)).value
    console.print(f"[green]Signed in as[/] {user.display_name} ([cyan]{user.id}[/])")


@app.command()
def logout():
    """Sign out."""
    _check(AccountService(_repo()).logout())
    console.print("[green]Signed out[/]")


@app.command()
def whoami():
    """Show the signed-in user."""
    _, user = _session(_repo())
    console.print(f"[bold]{user.display_name}[/] @{user.username} ([cyan]{user.id}[/]) speaks {get_language_name(user.preferred_language)}")


@app.command()
def users(query: str = typer.Argument("", help="Filter by username or display name")):
    """List other users."""
    accounts, _ = _session(_repo())
    found = _check(accounts.search_users(query)).value
    table = Table(title=f"Users ({len(found)})")
    table.add_column("Id", style="cyan")
    table.add_column("Username")
    table.add_column("Name")
    table.add_column("Language", style="green")
    for u in found:
        table.add_row(u.id, u.username, u.display_name, u.preferred_language)
    console.print(table)


# ----------------------------------------------------------------------
# Messaging
# ----------------------------------------------------------------------

@app.command()
def send(
    text: str = typer.Argument(..., help="Message text"),
    to: Optional[str] = typer.Option(None, "--to", "-t", help="Receiver user id"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Group id"),
):
    """Send a message to a user or a group."""
    repo = _repo()
    _, user = _session(repo)
    message = _check(_manager(repo, user).send(_target(to, group), text)).value
    console.print(f"[green]Sent[/] {message.id} [dim]({message.original_language})[/]")
    for lang, rendered in message.translations.items():
        console.print(f"  [cyan]{lang}[/] {escape(rendered)}")


@app.command()
def history(
    chat_id: str = typer.Argument(..., help="User or group id"),
    original: bool = typer.Option(False, "--original", help="Show original text instead of your language"),
):
    """Show a chat's messages in your language."""
    repo = _repo()
    _, user = _session(repo)
    manager = _manager(repo, user)
    result = manager.load_messages(chat_id)
    if not result.ok:
        console.print(f"[yellow]Warning:[/] {result.error}")
    starred = manager.starred_ids()
    reactions = manager.reactions(chat_id).value

    table = Table(title=f"Chat {chat_id}")
    table.add_column("Time", style="dim")
    table.add_column("Id", style="dim")
    table.add_column("From", style="cyan")
    table.add_column("Text")
    table.add_column("", style="yellow")
    for m in result.value:
        text = escape(m.original_text if original else manager.translate_for_reader(m))
        if m.forwarded_from:
            text = f"[dim]forwarded[/] {text}"
        marks = "★ " if m.id in starred else ""
        marks += " ".join(f"{e}{n}" for e, n in reactions.get(m.id, {}).items())
        table.add_row(_when(m.timestamp), m.id, "me" if m.sender_id == user.id else m.sender_id, text, marks)
    console.print(table)
    manager.mark_as_read(chat_id)


@app.command()
def forward(
    chat_id: str = typer.Argument(...),
    message_id: str = typer.Argument(...),
    targets: List[str] = typer.Argument(..., help="User or group ids to forward to"),
):
    """Forward a message to other chats."""
    repo = _repo()
    _, user = _session(repo)
    manager = _manager(repo, user)
    message = _find_message(manager, chat_id, message_id)
    results = manager.forward_message(message, [ChatTarget.parse(t) for t in targets])
    sent = sum(1 for r in results if r.ok)
    for target, r in zip(targets, results):
        if not r.ok:
            console.print(f"[red]{target}:[/] {r.error}")
    console.print(f"[green]Message forwarded to {sent} chat(s)[/]")
    if sent < len(results):
        raise typer.Exit(1)


@app.command("delete-message")
def delete_message(chat_id: str = typer.Argument(...), message_id: str = typer.Argument(...)):
    """Delete a message from a chat."""
    repo = _repo()
    _, user = _session(repo)
    removed = _check(_manager(repo, user).delete_message(chat_id, message_id)).value
    console.print("[green]Deleted[/]" if removed else f"[yellow]No message {message_id}[/]")


# ----------------------------------------------------------------------
# Conversations
# ----------------------------------------------------------------------

@app.command()
def chats(archived: bool = typer.Option(False, "--archived", "-a", help="Show archived chats")):
    """List conversations, pinned first then most recent."""
    repo = _repo()
    _, user = _session(repo)
    manager = _manager(repo, user)
    groups = GroupService(repo, user)
    result = manager.archived_conversations() if archived else manager.list_conversations()
    if not result.ok:
        console.print(f"[yellow]Warning:[/] {result.error}")

    table = Table(title="Archived chats" if archived else "Chats")
    table.add_column("", style="yellow")
    table.add_column("Chat", style="cyan")
    table.add_column("Name")
    table.add_column("Last message")
    table.add_column("When", style="dim")
    table.add_column("Unread", style="green")
    table.add_column("Category", style="dim")
    for c in result.value:
        last = escape(manager.translate_for_reader(c.last_message)) if c.last_message else ""
        table.add_row(
            "📌" if c.is_pinned else "",
            c.chat_id,
            groups.chat_name(c.chat_id),
            last,
            _when(c.sort_timestamp),
            str(c.unread_count or ""),
            c.category.value if c.category else "",
        )
    console.print(table)


def _conversation_command(action: str, chat_id: str) -> None:
    repo = _repo()
    _, user = _session(repo)
    result = _check(getattr(_manager(repo, user), action)(chat_id))
    if result.value is None:
        console.print(f"[yellow]No conversation for {chat_id}[/]")
    else:
        console.print(f"[green]{action.replace('_', ' ').capitalize()}:[/] {chat_id}")


@app.command()
def read(chat_id: str = typer.Argument(...)):
    """Mark a chat as read."""
    repo = _repo()
    _, user = _session(repo)
    found = _check(_manager(repo, user).mark_as_read(chat_id)).value
    console.print("[green]Marked as read[/]" if found else f"[yellow]No conversation for {chat_id}[/]")


@app.command()
def pin(chat_id: str = typer.Argument(...)):
    """Pin a conversation (at most 5)."""
    _conversation_command("pin", chat_id)


@app.command()
def unpin(chat_id: str = typer.Argument(...)):
    """Unpin a conversation."""
    _conversation_command("unpin", chat_id)


@app.command()
def archive(chat_id: str = typer.Argument(...)):
    """Archive a conversation (also unpins it)."""
    _conversation_command("archive", chat_id)


@app.command()
def unarchive(chat_id: str = typer.Argument(...)):
    """Restore an archived conversation."""
    _conversation_command("unarchive", chat_id)


@app.command()
def delete(chat_id: str = typer.Argument(...)):
    """Remove a conversation from the list (history is kept)."""
    _conversation_command("delete_conversation", chat_id)


@app.command()
def category(
    chat_id: str = typer.Argument(...),
    name: str = typer.Argument(..., help="personal, work, groups or none"),
):
    """Set a conversation's category."""
    repo = _repo()
    _, user = _session(repo)
    value = None if name.lower() == "none" else name.lower()
    result = _check(_manager(repo, user).set_category(chat_id, value))
    if result.value is None:
        console.print(f"[yellow]No conversation for {chat_id}[/]")
    else:
        console.print(f"[green]Category set:[/] {name}")


# ----------------------------------------------------------------------
# Stars, reactions, privacy
# ----------------------------------------------------------------------

@app.command()
def star(chat_id: str = typer.Argument(...), message_id: str = typer.Argument(...)):
    """Star or unstar a message."""
    repo = _repo()
    _, user = _session(repo)
    starred_now = _check(_manager(repo, user).toggle_star(chat_id, message_id)).value
    console.print("[green]Message added to starred[/]" if starred_now else "[green]Message removed from starred[/]")


@app.command()
def starred(sort: str = typer.Option("date", "--sort", "-s", help="date or chat")):
    """List starred messages."""
    repo = _repo()
    _, user = _session(repo)
    manager = _manager(repo, user)
    groups = GroupService(repo, user)
    items = manager.starred_messages(sort_by=sort).value
    table = Table(title=f"Starred messages ({len(items)})")
    table.add_column("Starred", style="dim")
    table.add_column("Chat", style="cyan")
    table.add_column("Text")
    for item in items:
        table.add_row(_when(item.star.created_at), groups.chat_name(item.star.chat_id), escape(manager.translate_for_reader(item.message)))
    console.print(table)


@app.command()
def react(
    chat_id: str = typer.Argument(...),
    message_id: str = typer.Argument(...),
    emoji: str = typer.Argument(...),
):
    """React to a message with an emoji."""
    repo = _repo()
    _, user = _session(repo)
    counts = _check(_manager(repo, user).react(chat_id, message_id, emoji)).value
    console.print(" ".join(f"{e} {n}" for e, n in counts.items()))


@app.command()
def block(user_id: str = typer.Argument(...)):
    """Block a user."""
    accounts, _ = _session(_repo())
    entry = _check(accounts.block_user(user_id)).value
    console.print(f"[green]{entry.display_name} has been blocked.[/] They cannot message you or see your status.")


@app.command()
def unblock(user_id: str = typer.Argument(...)):
    """Unblock a user."""
    accounts, _ = _session(_repo())
    changed = _check(accounts.unblock_user(user_id)).value
    console.print("[green]User unblocked[/]" if changed else f"[yellow]{user_id} was not blocked[/]")


@app.command()
def blocked():
    """List blocked users."""
    accounts, _ = _session(_repo())
    entries = _check(accounts.blocked_users()).value
    if not entries:
        console.print("[dim]No blocked users[/]")
        return
    for b in entries:
        console.print(f"  [cyan]{b.display_name}[/] @{b.username} [dim]blocked {_when(b.blocked_at)}[/]")


# ----------------------------------------------------------------------
# Groups
# ----------------------------------------------------------------------

@app.command("group-create")
def group_create(
    name: str = typer.Argument(...),
    members: List[str] = typer.Argument(..., help="Member user ids"),
    description: str = typer.Option("", "--description", "-d"),
    private: bool = typer.Option(False, "--private"),
):
    """Create a group chat."""
    repo = _repo()
    _, user = _session(repo)
    group = _check(GroupService(repo, user).create_group(name, members, description, private)).value
    console.print(f"[green]Group created:[/] {group.name} ([cyan]{group.id}[/]), {len(group.members)} member(s)")


@app.command("groups")
def list_groups():
    """List your groups."""
    repo = _repo()
    _, user = _session(repo)
    for g in GroupService(repo, user).my_groups().value:
        langs = sorted({m.preferred_language for m in g.members})
        console.print(f"  [cyan]{g.id}[/] {g.name} [dim]{len(g.members)} members, {', '.join(langs)}[/]")


# ----------------------------------------------------------------------
# Translation stub
# ----------------------------------------------------------------------

@app.command()
def translate(
    text: str = typer.Argument(...),
    target: str = typer.Option(..., "--target", "-l", help="Target language code"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source language (detected if omitted)"),
    backend: str = typer.Option("phrasebook", "--backend", "-b", help="phrasebook or echo"),
):
    """Translate text with the offline stub."""
    try:
        translator = create_translator(backend)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}", style="bold")
        raise typer.Exit(1)
    source = source or create_detector().detect(text)
    result = translator.translate(text, source, target)
    console.print(f"[dim]{source} → {target} ({result.metadata.get('match', translator.name)})[/]")
    console.print(result.text, markup=False)


@app.command()
def detect(text: str = typer.Argument(...)):
    """Guess the language of a text from its script."""
    code = create_detector().detect(text)
    console.print(f"{code} ({get_language_name(code)})")


@app.command()
def languages():
    """List supported languages."""
    table = Table(title=f"Supported languages ({len(SUPPORTED_LANGUAGES)})")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("Native name", style="green")
    for lang in SUPPORTED_LANGUAGES:
        table.add_row(lang.code, lang.name, lang.native_name)
    console.print(table)


# ----------------------------------------------------------------------
# Settings and maintenance
# ----------------------------------------------------------------------

@app.command()
def settings(
    theme: Optional[str] = typer.Option(None, "--theme", help="light, dark or auto"),
    font_size: Optional[str] = typer.Option(None, "--font-size", help="small, medium or large"),
    notifications: Optional[bool] = typer.Option(None, "--notifications/--no-notifications"),
):
    """Show or change app settings."""
    prefs = PreferenceService(_repo())
    prefs.load()
    changes = {}
    if theme is not None:
        changes["theme"] = theme
    if font_size is not None:
        changes["font_size"] = font_size
    if notifications is not None:
        changes["notifications_enabled"] = notifications
    if changes:
        _check(prefs.update(**changes))
    s = prefs.settings
    console.print(f"theme={s.theme} font_size={s.font_size} ({prefs.font_points()}pt) notifications={'on' if s.notifications_enabled else 'off'}")


@app.command()
def reconcile():
    """Finish or undo writes interrupted by a crash."""
    repo = _repo()
    _, user = _session(repo)
    count = _check(repo.reconcile(user.id)).value
    console.print(f"[green]Reconciled {count} interrupted write(s)[/]")


@app.command()
def doctor():
    """Check the data directory and stored collections."""
    repo = _repo()
    session = repo.session_user().value
    checks = collect_diagnostics(repo, _store_path(), session.id if session else None, ChatConfig.from_env())
    table = Table(title="Diagnostics")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    colors = {"ok": "green", "warn": "yellow", "error": "red"}
    for c in checks:
        table.add_row(c.name, f"[{colors[c.status]}]{c.status}[/]", c.detail)
    console.print(table)
    summary = summarize_checks(checks)
    console.print(f"{summary['ok']} ok, {summary['warn']} warning(s), {summary['error']} error(s)")
    if summary["error"]:
        raise typer.Exit(1)


@app.command("config")
def show_config():
    """Show the effective chat configuration."""
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("store", str(_store_path()))
    for key, value in ChatConfig.from_env().to_dict().items():
        table.add_row(key, str(value))
    console.print(table)
