"""

SUPER_ADMIN 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 SUPERADMIN_* 환경 변수를 읽어
  SUPER_ADMIN 계정을 생성한다.
- 이미 SUPER_ADMIN 계정이 존재하면 생성하지 않고 종료한다.
- 모든 리소스에 대한 허용 목록(SUPER_ADMIN_GRANTS)을 함께 기록한다.

사용 목적:
- 관리자 계정 / 권한 관리 API에 접근할 수 있는
  최상위 관리자 계정을 안전하게 초기화하기 위함

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.create_superadmin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import or_, select

from app.core.config import settings
from app.core.policy import SUPER_ADMIN_GRANTS
from app.db.session import Database
from app.models.admin import Admin, AdminRole
from app.services.admin import create_admin


def main():
    database = Database(settings.DATABASE_URL, connect_timeout=settings.DB_CONNECT_TIMEOUT).open()
    db = database.session()
    try:
        exists = db.scalar(
            select(Admin).where(Admin.role == AdminRole.SUPER_ADMIN)
        )
        if exists:
            print("SUPER_ADMIN already exists. Skip creation.")
            return

        username = os.environ.get("SUPERADMIN_USERNAME", "superadmin")
        email = os.environ["SUPERADMIN_EMAIL"]
        password = os.environ["SUPERADMIN_PASSWORD"]
        first_name = os.environ.get("SUPERADMIN_FIRST_NAME", "Super")
        last_name = os.environ.get("SUPERADMIN_LAST_NAME", "Admin")

        taken = db.scalar(
            select(Admin).where(or_(Admin.username == username, Admin.email == email))
        )
        if taken:
            raise RuntimeError("Username or email already exists but is not SUPER_ADMIN")

        create_admin(
            db,
            username=username,
            email=email,
            password=password,
            role=AdminRole.SUPER_ADMIN,
            first_name=first_name,
            last_name=last_name,
            grants=SUPER_ADMIN_GRANTS,
        )
        db.commit()

        print(f"SUPER_ADMIN created: {username} <{email}>")

    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    main()
