import argparse
import json
from typing import List, Optional

from loguru import logger
from sqlalchemy import create_engine

from fpcp.config import get_settings
from fpcp.db.database import Base
from fpcp.notifications.errors import JobError

settings = get_settings()


def init_database():
    """初始化資料庫"""
    import fpcp.models  # noqa: F401

    engine = create_engine(settings.sync_database_url)
    Base.metadata.create_all(engine)
    logger.info("Database initialized")


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def run_job(command: str, batch_size: Optional[int] = None) -> int:
    """執行通知任務，回傳 exit code"""
    from fpcp.scheduler.jobs import run_deadline_reminders, run_email_dispatch

    try:
        if command == "remind":
            result = run_deadline_reminders()
        else:
            result = run_email_dispatch(batch_size)
    except JobError as e:
        logger.error(f"{command} failed: {e}")
        return 1

    logger.info(f"Result: {json.dumps(result)}")
    return 0


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="FPCP Notify CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database")

    # remind command
    subparsers.add_parser("remind", help="Queue deadline reminders, then dispatch")

    # dispatch command
    dispatch_parser = subparsers.add_parser("dispatch", help="Send pending emails")
    dispatch_parser.add_argument(
        "--batch-size",
        "-n",
        type=positive_int,
        help="Max emails to send (default from settings)",
    )

    # serve command
    subparsers.add_parser("serve", help="Start API server")

    args = parser.parse_args(argv)

    if args.command == "init":
        init_database()
    elif args.command == "remind":
        raise SystemExit(run_job("remind"))
    elif args.command == "dispatch":
        raise SystemExit(run_job("dispatch", args.batch_size))
    elif args.command == "serve":
        import uvicorn

        uvicorn.run(
            "fpcp.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
