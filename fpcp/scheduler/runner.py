from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from fpcp.config import get_settings
from fpcp.scheduler.jobs import run_deadline_reminders_job, run_email_dispatch_job


def create_scheduler() -> BackgroundScheduler:
    settings = get_settings()
    scheduler = BackgroundScheduler()

    # 截止日提醒掃描（預設每小時整點）
    scheduler.add_job(
        run_deadline_reminders_job,
        CronTrigger(hour=settings.reminder_cron_hour, minute=0),
        id="deadline_reminders",
        name="Deadline Reminders",
    )

    # 定期發送郵件佇列
    scheduler.add_job(
        run_email_dispatch_job,
        "interval",
        minutes=settings.dispatch_interval_minutes,
        id="email_dispatch",
        name="Email Dispatch",
    )

    logger.info("Scheduler configured with jobs")
    return scheduler


def start_scheduler():
    scheduler = create_scheduler()
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler
