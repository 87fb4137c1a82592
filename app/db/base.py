"""
base.py

ORM Base 와 공통 컬럼 헬퍼.

- Base         : 회원 / 관리자 / 감사 로그 모델이 모두 상속 (Alembic target_metadata)
- enum_values  : SAEnum(values_callable=...) 용. DB 에는 enum 이름이 아닌 값을 저장

관련 파일:
- app.models.*            : 모든 ORM 모델
- alembic/env.py          : 마이그레이션 메타데이터 로드

"""

from sqlalchemy.orm import declarative_base

# 모든 ORM 모델이 상속받는 Base 클래스
Base = declarative_base()


# Enum 컬럼에 이름(ACTIVE)이 아닌 값(active)을 저장
def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
