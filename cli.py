import argparse
import datetime
import logging
import shutil
from typing import Optional

from config import DEFAULT_DB_PATH, DEFAULT_SETTINGS_PATH
from db import Database, SessionRepository, SettingsRepository
from seed_sample_data import seed
from stats_service import StatisticsService


def backup_db(db_path: str, backup_path: str) -> None:
    Database(db_path).vacuum()
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def _parse_now(value: Optional[str], tz: datetime.tzinfo) -> datetime.datetime:
    if value is None:
        return datetime.datetime.now(tz)
    parsed = datetime.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _statistics(db_path: str, yaml_path: str) -> tuple[StatisticsService, datetime.tzinfo]:
    settings = SettingsRepository(db_path, yaml_path).schema()
    return StatisticsService(first_weekday=settings.week_start), settings.tzinfo


def print_stats(db_path: str, yaml_path: str, now: Optional[str] = None) -> None:
    stats, tz = _statistics(db_path, yaml_path)
    sessions = SessionRepository(db_path).fetch_all_sessions()
    profile = stats.profile_stats(sessions, _parse_now(now, tz))
    print(f"Workouts (7 days): {profile.workout_count}")
    print(f"Volume (7 days): {profile.total_volume:.1f}")
    if profile.strength_trend is None:
        print("Strength trend: n/a")
    else:
        print(f"Strength trend: {profile.strength_trend.percent_change * 100:+.1f}%")
    for group in profile.muscle_group_sets:
        print(f"  {group.name}: {group.set_count} sets")


def print_streak(db_path: str, yaml_path: str, now: Optional[str] = None) -> None:
    stats, tz = _statistics(db_path, yaml_path)
    sessions = SessionRepository(db_path).fetch_all_sessions()
    weeks = stats.weekly_streak(sessions, _parse_now(now, tz))
    print(f"Weekly streak: {weeks}")


def demo_data(db_path: str) -> None:
    """Populate the database with the default catalog if empty."""
    if seed(db_path):
        print("Demo data inserted")
    else:
        print("Database already contains movements")


def serve(db_path: str, yaml_path: str, host: str, port: int) -> None:
    import uvicorn
    from rest_api import WorkoutAPI

    api = WorkoutAPI(db_path=db_path, yaml_path=yaml_path)
    uvicorn.run(api.app, host=host, port=port)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=DEFAULT_DB_PATH)
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=DEFAULT_DB_PATH)

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=DEFAULT_DB_PATH)

    for name in ("stats", "streak"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--db", default=DEFAULT_DB_PATH)
        cmd.add_argument("--yaml", default=DEFAULT_SETTINGS_PATH)
        cmd.add_argument("--now", default=None)

    srv = sub.add_parser("serve")
    srv.add_argument("--db", default=DEFAULT_DB_PATH)
    srv.add_argument("--yaml", default=DEFAULT_SETTINGS_PATH)
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db)
    elif args.cmd == "stats":
        print_stats(args.db, args.yaml, args.now)
    elif args.cmd == "streak":
        print_streak(args.db, args.yaml, args.now)
    elif args.cmd == "serve":
        serve(args.db, args.yaml, args.host, args.port)


if __name__ == "__main__":
    main()
