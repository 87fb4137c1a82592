"""
services/scheduler.py

백그라운드 주기 작업 스케줄러 (APScheduler).

- 회원 자격 만료 작업: EXPIRY_JOB_INTERVAL_HOURS 마다 실행
- app.main lifespan 에서 EXPIRY_JOB_ENABLED 일 때만 시작하고,
  반환된 스케줄러를 app.state.scheduler 에 보관했다가 종료 시 shutdown

"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.db.session import Database
from app.services.lifecycle import run_expiry_job

logger = logging.getLogger(__name__)

EXPIRY_JOB_ID = "membership_expiry"


def start_scheduler(database: Database, interval_hours: Optional[int] = None) -> BackgroundScheduler:
    hours = interval_hours or settings.EXPIRY_JOB_INTERVAL_HOURS

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_expiry_job,
        trigger=IntervalTrigger(hours=hours),
        args=[database],
        id=EXPIRY_JOB_ID,
        name="Expire overdue memberships",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Background scheduler started. Membership expiry every %d hours.", hours)
    return scheduler


def shutdown_scheduler(scheduler: Optional[BackgroundScheduler]) -> None:
    if scheduler is None:
        return
    scheduler.shutdown(wait=False)
    logger.info("Background scheduler stopped.")
