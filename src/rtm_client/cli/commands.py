# src/rtm_client/cli/commands.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..api.errors import RTMError
from ..core.state import AppState
from ..index.index_store import IndexPersistenceError
from ..tasks.task_models import RTMTask
from .bootstrap import forget_user, save_user

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "Not logged in. Run: rtm login"


class CommandRegistry:
    """Subcommand registry used by the rtm CLI (help, login, tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        argv: list[str],
        emit: CommandEmitter | None = None,
    ) -> str:
        """
        Run "command args..." and return the text to print.

        API failures come back as "ERROR <code>: <msg>" instead of raising.
        An unwritable index cache comes back as "ERROR: <msg>".
        """
        if not argv:
            return self.build_help()

        name = argv[0].lower()
        args = argv[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: {name}. Use 'rtm help' to list available commands."

        try:
            return await handler(state, args, emit)
        except RTMError as e:
            logger.info("Command %s failed: %r", name, e)
            return str(e)
        except IndexPersistenceError as e:
            logger.warning("Command %s could not save task numbers: %s", name, e)
            return f"ERROR: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_index(raw: str) -> int | None:
    try:
        idx = int(raw)
    except ValueError:
        return None
    return idx if idx > 0 else None


def format_task(task: RTMTask) -> str:
    prio = f"!{task.priority} " if task.priority else ""
    due = f" (due {task.due.date().isoformat()})" if task.due else ""
    where = f" [{task.task_list.name}]" if task.task_list else ""
    done = " (done)" if task.is_completed else ""
    return f"{task.index:>3}. {prio}{task.name}{due}{where}{done}"


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    login         -> authorize this app in the browser, then save the user
    login --reset -> forget the saved user first
    """
    if args and args[0] == "--reset":
        forget_user(state)
    elif state.user is not None:
        return f"Already logged in as {state.user.username}. Use: rtm login --reset"

    url, frob = await state.client.get_auth_url()
    if emit:
        emit(f"Open this URL and authorize the app:\n  {url}")
    await asyncio.to_thread(input, "Press Enter once you have authorized the app... ")

    state.user = await state.client.get_auth_token(frob)
    save_user(state)
    return f"Logged in as {state.user.username} ({state.user.fullname})."


async def cmd_whoami(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    valid = await user.verify_auth_token()
    token = "valid" if valid else "INVALID (run: rtm login --reset)"
    return f"{user.username} ({user.fullname}) id={user.id} token={token}"


async def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    tasks          -> incomplete tasks
    tasks <filter> -> tasks matching an RTM search filter
    """
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    list_filter = " ".join(args) if args else "status:incomplete"
    tasks = await user.tasks.update(list_filter)
    if not tasks:
        return "No tasks."
    return "\n".join(format_task(t) for t in sorted(tasks, key=lambda t: t.index or 0))


async def cmd_lists(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    lists = await user.lists.update()
    lines = []
    for lst in sorted(lists, key=lambda x: x.index or 0):
        if lst.deleted or lst.archived:
            continue
        kind = " (smart)" if lst.smart else ""
        lines.append(f"{lst.index:>3}. {lst.name}{kind}")
    return "\n".join(lines) if lines else "No lists."


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    if not args:
        return "Usage: rtm add <task name with Smart Add syntax>"
    name = " ".join(args)
    await user.tasks.add(name)
    return f"Added: {name}"


def _by_index(op: str, verb: str) -> CommandHandler:
    async def handler(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
        user = state.user
        if user is None:
            return NOT_LOGGED_IN
        idx = _parse_index(args[0]) if args else None
        if idx is None:
            return f"Usage: rtm {op} <task number>"
        await getattr(user.tasks, op)(idx)
        return f"{verb} task {idx}."

    return handler


async def cmd_priority(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    idx = _parse_index(args[0]) if args else None
    if idx is None or len(args) < 2:
        return "Usage: rtm priority <task number> <1|2|3|0>"
    try:
        await user.tasks.priority(idx, args[1])
    except ValueError as e:
        return str(e)
    return f"Set priority of task {idx} to {args[1]}."


async def cmd_reindex(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    user = state.user
    if user is None:
        return NOT_LOGGED_IN
    user.tasks.clear_indices()
    return "Task numbers cleared; they are reassigned on the next 'rtm tasks'."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Authorize with Remember The Milk: login [--reset].")
registry.register("whoami", cmd_whoami, help_text="Show the saved user and check its token.")
registry.register("tasks", cmd_tasks, help_text="List tasks: tasks [filter].", aliases=["ls"])
registry.register("lists", cmd_lists, help_text="List your lists.")
registry.register("add", cmd_add, help_text="Add a task: add <name ^due !1 #list>.")
registry.register("complete", _by_index("complete", "Completed"), help_text="Complete a task: complete <n>.")
registry.register("uncomplete", _by_index("uncomplete", "Reopened"), help_text="Reopen a task: uncomplete <n>.")
registry.register("delete", _by_index("delete", "Deleted"), help_text="Delete a task: delete <n>.", aliases=["rm"])
registry.register("postpone", _by_index("postpone", "Postponed"), help_text="Postpone a task: postpone <n>.")
registry.register("priority", cmd_priority, help_text="Set priority: priority <n> <1|2|3|0>.")
registry.register("reindex", cmd_reindex, help_text="Forget task numbers and start again from 1.")
