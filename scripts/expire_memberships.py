"""

회원 자격 만료 작업 1회 실행 스크립트.

- renewal_date < 현재 시각 이고 member_status = active 인 회원을 expired 로 변경
- 만료된 관리자 세션 행 정리
- cron 등 외부 스케줄러에서 호출하거나, 수동 점검 시 사용
  (서버 내 APScheduler 를 쓰려면 EXPIRY_JOB_ENABLED=true)

사용 방법
- (.venv) ~\backend~$ python -m scripts.expire_memberships

"""

import sys

from dotenv import load_dotenv
load_dotenv()

from app.core.config import settings
from app.core.logger import setup_logging
from app.db.session import Database
from app.services.lifecycle import run_expiry_job


def main() -> int:
    setup_logging(settings.LOG_LEVEL)
    database = Database(settings.DATABASE_URL, connect_timeout=settings.DB_CONNECT_TIMEOUT).open()
    try:
        result = run_expiry_job(database)
    finally:
        database.close()

    if result is None:
        print("Membership expiry job failed. See logs for details.")
        return 1

    print(f"Expired {result.expired_members} member(s), purged {result.purged_sessions} admin session(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
