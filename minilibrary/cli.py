"""Small operational utilities: create tables, seed demo data, serve, run a job once."""

from datetime import date
import argparse
import logging

from minilibrary.core.config import Settings
from minilibrary.core.database import init_db, make_engine, make_session_factory
from minilibrary.core.logging_config import configure_logging
from minilibrary.core.security import hash_password
from minilibrary.models import models
from minilibrary.notifications.email import Mailer
from minilibrary.notifications.jobs import send_due_date_reminders, send_new_book_announcements

logger = logging.getLogger("minilibrary")

DEMO_PASSWORD = "changeme123"


def seed(session_factory, settings: Settings) -> None:
    db = session_factory()
    try:
        # idempotent: only seeds empty tables
        if db.query(models.User).count() == 0:
            pw = hash_password(DEMO_PASSWORD, rounds=settings.bcrypt_rounds)
            db.add_all([
                models.User(username="admin", email="admin@example.com", password_hash=pw, role=models.Role.ADMIN),
                models.User(username="alice", first_name="Alice", email="alice@example.com", password_hash=pw),
            ])
        if db.query(models.Book).count() == 0:
            db.add_all([
                models.Book(title="Designing Data-Intensive Applications", author="Martin Kleppmann",
                            genre="Technology", publication_date=date(2017, 3, 16)),
                models.Book(title="The Left Hand of Darkness", author="Ursula K. Le Guin",
                            genre="Science Fiction", publication_date=date(1969, 3, 1)),
            ])
        db.commit()
        logger.info("Seeded sample data")
    finally:
        db.close()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Mini library utilities")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("initdb", help="Create tables")
    sub.add_parser("seed", help="Seed sample data")
    sub.add_parser("serve", help="Run the API server")
    job = sub.add_parser("run-job", help="Run a notification job once")
    job.add_argument("job", choices=["reminders", "announcements"])
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if args.command == "serve":
        from minilibrary.main import run

        run()
        return

    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)
    if args.command == "seed":
        seed(session_factory, settings)
    elif args.command == "run-job":
        mailer = Mailer(settings)
        with session_factory() as db:
            if args.job == "reminders":
                sent = send_due_date_reminders(db, mailer, window_days=settings.reminder_window_days)
            else:
                sent = send_new_book_announcements(db, mailer)
        logger.info(f"{args.job}: {sent} email(s) sent")
    engine.dispose()


if __name__ == "__main__":
    main()
