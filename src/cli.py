import argparse
import signal
import threading

from loguru import logger

from src.config import get_settings
from src.db.database import init_db
from src.scheduler.jobs import (
    expire_entities,
    process_eligible_cashbacks,
    send_scheduled_notifications,
)
from src.scheduler.runner import start_schedulers, stop_schedulers

settings = get_settings()

JOBS = {
    "cashback": process_eligible_cashbacks,
    "expire": expire_entities,
    "push": send_scheduled_notifications,
}


def run_job(name: str):
    """執行單次排程任務"""
    if name not in JOBS:
        logger.error(f"Unknown job: {name}. Available: {list(JOBS.keys())}")
        return None
    result = JOBS[name]()
    logger.info(f"Result: {result}")
    return result


def run_schedulers():
    """前景執行所有已啟用的排程器，直到收到中斷訊號"""
    init_db()
    handles = start_schedulers()
    stop_event = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping schedulers")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        stop_event.wait()
    finally:
        stop_schedulers(handles)


def main():
    parser = argparse.ArgumentParser(description="Poppik background schedulers CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database")

    # run command
    run_parser = subparsers.add_parser("run", help="Run a single scheduler pass")
    run_parser.add_argument("job", choices=sorted(JOBS.keys()), help="Job to run")

    # start command
    subparsers.add_parser("start", help="Run enabled schedulers in the foreground")

    # serve command
    subparsers.add_parser("serve", help="Start API server with schedulers")

    args = parser.parse_args()

    if args.command == "init":
        init_db()
    elif args.command == "run":
        run_job(args.job)
    elif args.command == "start":
        run_schedulers()
    elif args.command == "serve":
        import uvicorn

        uvicorn.run(
            "src.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
