# src/grand_prix/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.errors import GrandPrixError, ValidationError
from ..core.session import Session
from ..ui import screens

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[Session, list[str]], str]
CommandHandler3 = Callable[[Session, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /go, ...)."""

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

    def handle(
        self,
        session: Session,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        User-facing errors (GrandPrixError) become the reply; nothing was changed.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(session, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(session, args)
        except GrandPrixError as e:
            logger.debug("/%s rejected: %s", name, e)
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _index(args: list[str], usage: str) -> int:
    """1-based task number from the command line to a 0-based index."""
    if not args:
        raise ValidationError(f"Usage: {usage}")
    try:
        number = int(args[0])
    except ValueError:
        raise ValidationError(f"Usage: {usage}") from None
    return number - 1


def cmd_help(session: Session, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(session: Session, args: list[str]) -> str:
    st = session.state
    user = st.current_user or "(not logged in)"
    backend = "hosted" if st.backend.enabled else "local only"
    online = ", ".join(sorted(st.online)) or "nobody"
    sector = f" sector {st.current_sector}" if st.current_sector else ""
    return (
        "Status:\n"
        f"  User: {user}\n"
        f"  Screen: {st.screen}{sector}\n"
        f"  Leaderboard: {session.leaderboard_mode}\n"
        f"  Backend: {backend}\n"
        f"  Online: {online}"
    )


def cmd_register(session: Session, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /register <username|email> <password>"
    return session.register(args[0], args[1])


def cmd_login(session: Session, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /login <username|email> <password>"
    session.login(args[0], args[1])
    return screens.render_screen(session)


def cmd_logout(session: Session, args: list[str]) -> str:
    session.logout()
    return "Logged out.\n" + screens.render_auth()


def cmd_home(session: Session, args: list[str]) -> str:
    session.go_home()
    return screens.render_screen(session)


def cmd_sectors(session: Session, args: list[str]) -> str:
    session.show_sectors()
    return screens.render_screen(session)


def cmd_sector(session: Session, args: list[str]) -> str:
    number = _index(args, "/sector <1|2|3>") + 1
    session.enter_sector(number)
    return screens.render_screen(session)


def cmd_add(session: Session, args: list[str]) -> str:
    session.add_task()
    return screens.render_screen(session)


def cmd_remove(session: Session, args: list[str]) -> str:
    session.remove_task()
    return screens.render_screen(session)


def cmd_name(session: Session, args: list[str]) -> str:
    index = _index(args, "/name <task#> <text>")
    session.rename_task(index, " ".join(args[1:]))
    return screens.render_screen(session)


def cmd_ready(session: Session, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /ready -> start lights, then the sector clock starts.

    The lights run on the background loop; the command returns right away.
    """
    runner = session.state.runner
    if runner is None:
        session.mark_ready()
        return "Lights out and away we go!\n" + screens.render_screen(session)

    def on_step(lit: int) -> None:
        if emit:
            with contextlib.suppress(Exception):
                emit(screens.render_lights(lit))

    future = runner.submit(session.confirm_ready(on_step))

    def _done(f) -> None:
        if f.cancelled():
            return
        err = f.exception()
        if err is None:
            text = "Lights out and away we go!"
        elif isinstance(err, GrandPrixError):
            text = str(err)
        else:
            logger.error("Ignition failed", exc_info=err)
            text = "Internal error while starting the sector."
        if emit:
            with contextlib.suppress(Exception):
                emit(text)

    future.add_done_callback(_done)
    return "Get ready..."


def _task_command(action: Callable[[Session, int], object], usage: str) -> CommandHandler2:
    def handler(session: Session, args: list[str]) -> str:
        action(session, _index(args, usage))
        return screens.render_screen(session)

    return handler


cmd_go = _task_command(Session.start_task, "/go <task#>")
cmd_pit = _task_command(Session.pause_task, "/pit <task#>")
cmd_stop = _task_command(Session.reset_task, "/stop <task#>")
cmd_finish = _task_command(Session.finish_task, "/finish <task#>")


def cmd_board(session: Session, args: list[str]) -> str:
    return screens.render_screen(session)


def cmd_leaderboard(session: Session, args: list[str]) -> str:
    return screens.render_leaderboard(session.leaderboard(), mode=session.leaderboard_mode)


def cmd_history(session: Session, args: list[str]) -> str:
    session.show_history()
    return screens.render_screen(session)


def cmd_friends(session: Session, args: list[str]) -> str:
    return screens.render_friends(session)


def cmd_friend(session: Session, args: list[str]) -> str:
    """
    /friend add <username>     -> send a friend request
    /friend accept <username>  -> accept a pending request
    """
    if len(args) < 2:
        return "Usage: /friend add <username> | /friend accept <username>"
    sub, name = args[0].lower(), args[1]
    if sub == "add":
        return session.send_friend_request(name)
    if sub == "accept":
        return session.accept_friend(name)
    return "Usage: /friend add <username> | /friend accept <username>"


def cmd_invite(session: Session, args: list[str]) -> str:
    if not args:
        return "Usage: /invite <username>"
    return session.invite_to_race(args[0])


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show who is logged in, screen, mode and backend.")
registry.register("register", cmd_register, help_text="Create an account: /register <username|email> <password>.")
registry.register("login", cmd_login, help_text="Log in: /login <username|email> <password>.")
registry.register("logout", cmd_logout, help_text="Log out.")
registry.register("home", cmd_home, help_text="Welcome screen with the weekly leaderboard.")
registry.register("sectors", cmd_sectors, help_text="Sector selection.")
registry.register("sector", cmd_sector, help_text="Open a sector's task board: /sector <1|2|3>.")
registry.register("add", cmd_add, help_text="Add a task (before the sector starts).")
registry.register("remove", cmd_remove, help_text="Remove the last task (before the sector starts).")
registry.register("name", cmd_name, help_text="Name a task: /name <task#> <text>.")
registry.register("ready", cmd_ready, help_text="Start lights, then the sector clock runs.")
registry.register("go", cmd_go, help_text="Start or resume a task: /go <task#>.", aliases=["start"])
registry.register("pit", cmd_pit, help_text="Pit stop (pause) a task: /pit <task#>.", aliases=["pause"])
registry.register("stop", cmd_stop, help_text="Reset a task to not started: /stop <task#>.", aliases=["reset"])
registry.register("finish", cmd_finish, help_text="Finish a task: /finish <task#>.")
registry.register("board", cmd_board, help_text="Redraw the current screen.")
registry.register("leaderboard", cmd_leaderboard, help_text="Show the weekly leaderboard.", aliases=["lb"])
registry.register("history", cmd_history, help_text="Past days and sectors.")
registry.register("friends", cmd_friends, help_text="Friends, who is online and pending requests.")
registry.register("friend", cmd_friend, help_text="/friend add <username> | /friend accept <username>.")
registry.register("invite", cmd_invite, help_text="Invite a friend to race: /invite <username>.")
