"""

회원 인증 레코드 불일치 점검 / 복구 스크립트.

- 승인 + active 인데 인증 레코드가 없거나 비밀번호가 NULL 인 회원을 찾는다
- --fix 옵션을 주면 해당 회원을 pending_password_setup 으로 되돌리고
  새 비밀번호 설정 링크를 발급(로그 전달)한다
- 옵션 없이 실행하면 목록만 출력 (DB 변경 없음)

사용 방법
- (.venv) ~\backend~$ python -m scripts.repair_member_auth
- (.venv) ~\backend~$ python -m scripts.repair_member_auth --fix

"""

import argparse

from dotenv import load_dotenv
load_dotenv()

from app.core.config import settings
from app.core.logger import setup_logging
from app.db.session import Database
from app.services.lifecycle import find_dangling_members, repair_dangling_members
from app.services.notifications import send_password_setup_link


def main():
    parser = argparse.ArgumentParser(description="Detect and repair active members without a usable password")
    parser.add_argument("--fix", action="store_true", help="reset dangling members to pending_password_setup")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    database = Database(settings.DATABASE_URL, connect_timeout=settings.DB_CONNECT_TIMEOUT).open()
    db = database.session()
    try:
        dangling = find_dangling_members(db)
        if not dangling:
            print("No dangling members found.")
            return

        for member in dangling:
            print(f"- {member.id} {member.full_name} (status={member.member_status.value})")

        if not args.fix:
            print(f"{len(dangling)} dangling member(s). Re-run with --fix to repair.")
            return

        repaired = repair_dangling_members(db)
        db.commit()

        for item in repaired:
            send_password_setup_link(item.member_id, item.email, item.setup_token)
            print(f"Repaired {item.member_id}: username={item.username}")

    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    main()
