"""Daily job runner on a background thread.

Jobs run on their own timer, independently of request handling. A job that
raises is logged and rescheduled for the next day; the loop never dies.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from sqlalchemy.orm import sessionmaker

from minilibrary.core.clock import utcnow
from minilibrary.core.config import Settings
from minilibrary.notifications.jobs import MailSender, send_due_date_reminders, send_new_book_announcements

logger = logging.getLogger(__name__)

MAX_SLEEP_SECONDS = 60.0


@dataclass(frozen=True)
class DailyJob:
    name: str
    hour: int
    minute: int
    fn: Callable[[], Any]

    def next_run_after(self, now: datetime) -> datetime:
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate


class Scheduler:
    def __init__(self, jobs: List[DailyJob], clock: Callable[[], datetime] = utcnow):
        self.jobs = list(jobs)
        self._clock = clock
        self._next_runs: Dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def next_runs(self) -> Dict[str, datetime]:
        with self._lock:
            return dict(self._next_runs)

    def _schedule_all(self, now: datetime) -> None:
        with self._lock:
            for job in self.jobs:
                self._next_runs.setdefault(job.name, job.next_run_after(now))

    def run_job(self, job: DailyJob) -> None:
        logger.info(f"[Scheduler] Running job {job.name}")
        try:
            result = job.fn()
        except Exception as e:
            logger.error(f"[Scheduler] Job {job.name} failed: {e}", exc_info=True)
            return
        logger.info(f"[Scheduler] Job {job.name} finished: {result}")

    def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        """Run every job whose time has come and reschedule it. Returns the names run."""
        now = now or self._clock()
        self._schedule_all(now)
        ran = []
        for job in self.jobs:
            with self._lock:
                due = self._next_runs[job.name] <= now
                if due:
                    self._next_runs[job.name] = job.next_run_after(now)
            if due:
                self.run_job(job)
                ran.append(job.name)
        return ran

    def _seconds_until_next(self, now: datetime) -> float:
        with self._lock:
            if not self._next_runs:
                return MAX_SLEEP_SECONDS
            soonest = min(self._next_runs.values())
        return max(0.0, min((soonest - now).total_seconds(), MAX_SLEEP_SECONDS))

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            now = self._clock()
            self.run_pending(now)
            self._stop_event.wait(timeout=self._seconds_until_next(self._clock()))

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._schedule_all(self._clock())
        self._thread = threading.Thread(target=self._loop, daemon=True, name="notification-scheduler")
        self._thread.start()
        for name, when in self.next_runs().items():
            logger.info(f"[Scheduler] {name} next run at {when.isoformat()}")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None


def build_scheduler(settings: Settings, session_factory: sessionmaker, mailer: MailSender) -> Scheduler:
    """Reminders at 08:00 UTC, new-book announcements at 09:00 UTC."""

    def reminders() -> int:
        with session_factory() as db:
            return send_due_date_reminders(db, mailer, window_days=settings.reminder_window_days)

    def announcements() -> int:
        with session_factory() as db:
            return send_new_book_announcements(db, mailer)

    return Scheduler([
        DailyJob("due-date-reminders", 8, 0, reminders),
        DailyJob("new-book-announcements", 9, 0, announcements),
    ])
