# src/grand_prix/core/session.py

"""
Session controller: one per tab.

Holds the AppState and exposes every user-facing operation. Each operation
validates, applies a pure transition from core.timer, writes the result back
into the in-memory document, persists the whole document, pushes the change
to the hosted backend (fire-and-forget) and notifies subscribed views.

Errors meant for the user are raised as GrandPrixError subclasses; nothing
is changed when one is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..social import presence
from . import timer
from .clock import Clock, day_key, now_ms
from .errors import AuthError, BackendError, ValidationError
from .leaderboard import MODE_POINTS, MODE_TIME, LeaderboardEntry, compute_weekly_leaderboard, rank_entries
from .models import SECTOR_NUMBERS, DayRecord, SectorRecord, Task, TaskStatus, User
from .state import AppState, Cancellable, Screen
from .ticker import ignition_sequence

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, "str | None"], None]
# (event, optional user-facing text). Events: screen, tasks, ready, leaderboard,
# chequered_flag, time_up, presence, social.


@dataclass(slots=True, frozen=True)
class HistoryRow:
    day: str
    sector: int
    started: bool
    finished: int
    total: int
    total_ms: int


class Session:
    def __init__(self, state: AppState, *, clock: Clock = now_ms) -> None:
        self.state = state
        self.clock = clock
        self._listeners: list[SessionListener] = []
        state.channel.set_listener(self._on_envelope)

    # ---- settings ----

    def _setting(self, name: str, default):
        return getattr(self.state.settings, name, default)

    @property
    def min_tasks(self) -> int:
        return int(self._setting("min_tasks", timer.MIN_TASKS))

    @property
    def max_tasks(self) -> int:
        return int(self._setting("max_tasks", timer.MAX_TASKS))

    @property
    def sector_duration_ms(self) -> int:
        return int(self._setting("sector_minutes", 45)) * 60 * 1000

    @property
    def leaderboard_mode(self) -> str:
        mode = str(self._setting("leaderboard_mode", MODE_TIME))
        return mode if mode in (MODE_TIME, MODE_POINTS) else MODE_TIME

    # ---- listeners ----

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: str, text: str | None = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, text)
            except Exception:
                logger.exception("Session listener failed event=%s", event)

    # ---- persistence ----

    def save(self) -> None:
        try:
            self.state.repo.save_data(self.state.data)
        except OSError:
            logger.exception("Failed to persist data; continuing on in-memory state.")

    def known_user(self, username: str) -> User | None:
        """
        Look a user up, adopting their record from the store if this tab
        has never seen them (they registered in another tab after we loaded).
        """
        user = self.state.data.users.get(username)
        if user is not None:
            return user
        latest = self.state.repo.load_data()
        user = latest.users.get(username)
        if user is not None:
            self.state.data.users[username] = user
            logger.debug("Adopted user record %s from store", username)
        return user

    def restore(self) -> Screen:
        """Startup: load the document and resume a remembered login."""
        st = self.state
        st.data = st.repo.load_data()
        name = st.repo.load_current_user()
        if name and name in st.data.users:
            st.current_user = name
            logger.info("Resumed session user=%s", name)
            self._navigate(Screen.WELCOME)
            presence.announce_online(self)
        else:
            if name:
                logger.info("Remembered user %s no longer exists; logging out.", name)
            st.repo.clear_current_user()
            st.current_user = None
            self._navigate(Screen.AUTH)
        return st.screen

    # ---- auth ----

    @staticmethod
    def _credentials(username: str, password: str) -> tuple[str, str]:
        username = (username or "").strip()
        password = password or ""
        if not username or not password:
            raise ValidationError("Please enter both username and password.")
        return username, password

    def register(self, username: str, password: str) -> str:
        username, password = self._credentials(username, password)
        st = self.state
        by_email = "@" in username
        local_name = username.split("@", 1)[0] if by_email else username
        if not local_name:
            raise ValidationError("Please enter both username and password.")
        if self.known_user(local_name) is not None:
            raise ValidationError("Username already exists. Please choose another.")

        if st.backend.enabled:
            try:
                if by_email:
                    identity = st.backend.sign_up_email(username, password)
                else:
                    identity = st.backend.sign_up_username(username, password)
            except BackendError as e:
                logger.warning("Sign-up failed user=%s: %s", username, e)
                raise AuthError(f"Sign-up failed: {e}") from e
            st.data.users[local_name] = User(username=local_name, user_id=identity.user_id)
        else:
            st.data.users[local_name] = User(username=local_name, password=password)

        self.save()
        logger.info("Registered user=%s", local_name)
        self._navigate(Screen.AUTH)
        return "Account created! You can now log in."

    def login(self, username: str, password: str) -> User:
        username, password = self._credentials(username, password)
        st = self.state

        if st.backend.enabled:
            by_email = "@" in username
            try:
                if by_email:
                    identity = st.backend.sign_in_email(username, password)
                else:
                    identity = st.backend.sign_in_username(username, password)
                profile = st.backend.get_profile(identity.user_id)
            except BackendError as e:
                logger.warning("Sign-in failed user=%s: %s", username, e)
                raise AuthError(f"Login failed: {e}") from e

            name = username.split("@", 1)[0] if by_email else username
            if profile is not None and profile.username:
                name = profile.username
            user = self.known_user(name)
            if user is None:
                user = User(username=name)
                st.data.users[name] = user
            user.user_id = identity.user_id
            if profile is not None:
                user.points = max(0, profile.points)
        else:
            # register() keeps only the local part of an email address.
            name = username.split("@", 1)[0] if "@" in username else username
            user = self.known_user(name)
            if user is None:
                raise ValidationError("User not found. Please register.")
            if user.password != password:
                raise ValidationError("Incorrect password.")

        st.current_user = user.username
        st.repo.save_current_user(user.username)
        self.save()
        logger.info("Logged in user=%s", user.username)
        self._navigate(Screen.WELCOME)
        presence.announce_online(self)
        return user

    def logout(self) -> None:
        st = self.state
        if st.current_user:
            presence.announce_offline(self)
            logger.info("Logged out user=%s", st.current_user)
        st.current_user = None
        st.invites.clear()
        st.repo.clear_current_user()
        self._navigate(Screen.AUTH)

    def require_user(self) -> User:
        name = self.state.current_user
        user = self.state.data.users.get(name) if name else None
        if user is None:
            raise ValidationError("Please log in first.")
        return user

    @property
    def me(self) -> User | None:
        name = self.state.current_user
        return self.state.data.users.get(name) if name else None

    # ---- navigation ----

    def _navigate(self, screen: Screen, *, sector: int | None = None, day: str | None = None) -> None:
        self.cancel_ticker()
        st = self.state
        st.screen = screen
        st.current_sector = sector if screen == Screen.TASKS else None
        st.current_day = day if screen == Screen.TASKS else None
        self.emit("screen")

    def go_home(self) -> None:
        self.require_user()
        self._navigate(Screen.WELCOME)

    def show_sectors(self) -> None:
        self.require_user()
        self._navigate(Screen.SECTORS)

    def show_history(self) -> None:
        self.require_user()
        self._navigate(Screen.HISTORY)

    def attach_ticker(self, handle: Cancellable) -> None:
        self.cancel_ticker()
        self.state.ticker = handle

    def cancel_ticker(self) -> None:
        handle = self.state.ticker
        self.state.ticker = None
        if handle is not None:
            handle.cancel()

    # ---- sectors ----

    def enter_sector(self, number: int) -> SectorRecord:
        user = self.require_user()
        if number not in SECTOR_NUMBERS:
            raise ValidationError("Choose sector 1, 2 or 3.")

        now = self.clock()
        day = day_key(now)
        record = user.records.setdefault(day, DayRecord())
        created = number not in record.sectors
        if created:
            record.sectors[number] = timer.new_sector(now, min_tasks=self.min_tasks)

        self._pull_sector(user, day, number)
        self.save()
        if created:
            self._push(user, day, number, record.sectors[number])

        self._navigate(Screen.TASKS, sector=number, day=day)
        return record.sectors[number]

    def _pull_sector(self, user: User, day: str, number: int) -> None:
        if not self.state.backend.enabled or not user.user_id:
            return
        try:
            row = self.state.backend.select_sector(user_id=user.user_id, work_date=day, sector=number)
        except BackendError as e:
            logger.warning("Pull sector failed day=%s sector=%s: %s", day, number, e)
            return
        if not row:
            return
        remote = SectorRecord.from_dict({"startTime": row.get("start_time"), "tasks": row.get("tasks") or []})
        if remote.tasks:
            user.records[day].sectors[number] = remote
            logger.info("Pulled sector day=%s sector=%s tasks=%d", day, number, len(remote.tasks))

    def _active(self) -> tuple[User, str, int, SectorRecord]:
        user = self.require_user()
        st = self.state
        if st.screen != Screen.TASKS or st.current_sector is None or st.current_day is None:
            raise ValidationError("Choose a sector first.")
        record = user.records.get(st.current_day)
        sector = record.sectors.get(st.current_sector) if record else None
        if sector is None:
            raise ValidationError("Choose a sector first.")
        return user, st.current_day, st.current_sector, sector

    @property
    def active_sector(self) -> SectorRecord | None:
        try:
            return self._active()[3]
        except ValidationError:
            return None

    def _push(self, user: User, day: str, number: int, sector: SectorRecord) -> None:
        self.state.sync.push_sector(user_id=user.user_id, work_date=day, sector=number, record=sector)

    def _commit(self, user: User, day: str, number: int, sector: SectorRecord, event: str = "tasks") -> None:
        user.records.setdefault(day, DayRecord()).sectors[number] = sector
        self.save()
        self._push(user, day, number, sector)
        self.emit(event)

    def add_task(self) -> Task:
        user, day, number, sector = self._active()
        task = timer.blank_task(self.clock())
        self._commit(user, day, number, timer.add_task(sector, task, max_tasks=self.max_tasks))
        return task

    def remove_task(self) -> None:
        user, day, number, sector = self._active()
        self._commit(user, day, number, timer.remove_task(sector, min_tasks=self.min_tasks))

    @staticmethod
    def _task_at(sector: SectorRecord, index: int) -> Task:
        if not 0 <= index < len(sector.tasks):
            raise ValidationError(f"No task #{index + 1} in this sector.")
        return sector.tasks[index]

    def rename_task(self, index: int, name: str) -> Task:
        user, day, number, sector = self._active()
        task = timer.rename_task(self._task_at(sector, index), name)
        self._commit(user, day, number, timer.replace_task(sector, index, task))
        return task

    def mark_ready(self) -> SectorRecord:
        user, day, number, sector = self._active()
        sector = timer.mark_ready(sector, self.clock())
        self._commit(user, day, number, sector, event="ready")
        logger.info("Sector %s started user=%s day=%s", number, user.username, day)
        return sector

    async def confirm_ready(self, on_step: Callable[[int], None] | None = None) -> SectorRecord:
        """Run the start lights, then record the sector start."""
        with self.state.lock:
            _, _, _, sector = self._active()
            if sector.started:
                raise ValidationError("Sector already started.")
            if len(sector.tasks) < self.min_tasks:
                raise ValidationError(f"Minimum {self.min_tasks} tasks required in a sector.")

        await ignition_sequence(
            on_step,
            steps=int(self._setting("ignition_steps", 5)),
            step_seconds=float(self._setting("ignition_step_seconds", 1.0)),
            hold_seconds=float(self._setting("ignition_hold_seconds", 0.5)),
        )

        with self.state.lock:
            return self.mark_ready()

    # ---- tasks ----

    def _transition(
        self, index: int, fn: Callable[[Task, SectorRecord], Task]
    ) -> tuple[User, str, int, SectorRecord, Task, bool]:
        user, day, number, sector = self._active()
        task = self._task_at(sector, index)
        new = fn(task, sector)
        if new is task:
            return user, day, number, sector, task, False
        sector = timer.replace_task(sector, index, new)
        return user, day, number, sector, new, True

    def start_task(self, index: int) -> Task:
        now = self.clock()
        user, day, number, sector, task, changed = self._transition(
            index, lambda t, s: timer.start_task(t, now, sector_started=s.started)
        )
        if changed:
            self._commit(user, day, number, sector)
        return task

    def pause_task(self, index: int) -> Task:
        now = self.clock()
        user, day, number, sector, task, changed = self._transition(index, lambda t, s: timer.pause_task(t, now))
        if changed:
            self._commit(user, day, number, sector)
        return task

    def reset_task(self, index: int) -> Task:
        user, day, number, sector, task, changed = self._transition(index, lambda t, s: timer.reset_task(t))
        if changed:
            self._commit(user, day, number, sector)
        return task

    def finish_task(self, index: int) -> Task:
        now = self.clock()
        user, day, number, sector, task, changed = self._transition(index, lambda t, s: timer.finish_task(t, now))
        if not changed:
            return task

        points_mode = self.leaderboard_mode == MODE_POINTS
        if points_mode:
            user.points += int(self._setting("finish_bonus_points", 10))
            self.state.sync.push_points(user_id=user.user_id, points=user.points)

        self._commit(user, day, number, sector)
        logger.info(
            "Task finished user=%s sector=%s task=%s duration_ms=%s",
            user.username,
            number,
            task.id,
            task.duration,
        )
        self.emit("leaderboard")

        if points_mode and timer.all_finished(sector):
            self.cancel_ticker()
            self.emit("chequered_flag", f"Sector {number} complete!")
        return task

    # ---- derived views ----

    def sector_snapshot(self) -> timer.SectorSnapshot:
        with self.state.lock:
            _, _, number, sector = self._active()
            return timer.snapshot_sector(number, sector, self.clock(), duration_ms=self.sector_duration_ms)

    def leaderboard(self) -> list[LeaderboardEntry]:
        st = self.state
        mode = self.leaderboard_mode
        if st.backend.enabled:
            try:
                rows = st.backend.fetch_leaderboard()
            except BackendError as e:
                logger.warning("Leaderboard pull failed, using local data: %s", e)
            else:
                entries = [LeaderboardEntry(username=r.username, total_ms=r.total_ms, points=r.points) for r in rows]
                return rank_entries(entries, mode=mode)
        return compute_weekly_leaderboard(st.data.users, self.clock(), mode=mode)

    def history(self) -> list[HistoryRow]:
        user = self.require_user()
        rows: list[HistoryRow] = []
        for day in sorted(user.records, reverse=True):
            for number, sector in sorted(user.records[day].sectors.items()):
                rows.append(
                    HistoryRow(
                        day=day,
                        sector=number,
                        started=sector.started,
                        finished=sum(1 for t in sector.tasks if t.status == TaskStatus.FINISHED),
                        total=len(sector.tasks),
                        total_ms=timer.finished_total_ms(sector),
                    )
                )
        return rows

    # ---- social ----

    def send_friend_request(self, to: str) -> str:
        return presence.send_friend_request(self, to)

    def accept_friend(self, sender: str) -> str:
        return presence.accept_friend_request(self, sender)

    def invite_to_race(self, to: str) -> str:
        return presence.invite_to_race(self, to)

    def _on_envelope(self, envelope: dict) -> None:
        with self.state.lock:
            presence.handle_envelope(self, envelope)

    # ---- shutdown ----

    def close(self) -> None:
        """Tab closing: stop the ticker, go offline, detach from the channel. The login is remembered."""
        self.cancel_ticker()
        presence.announce_offline(self)
        try:
            self.state.channel.close()
        except Exception:
            logger.debug("Channel close failed.", exc_info=True)
        self.state.sync.flush()
        self.state.sync.close()
