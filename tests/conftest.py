import os

# 앱 import 전에 테스트용 환경 변수 지정 (bcrypt cost 최소값으로 테스트 속도 확보)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-only-secret-key")
os.environ.setdefault("MEMBER_BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_BCRYPT_ROUNDS", "4")
os.environ.setdefault("EXPIRY_JOB_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from app.main import app as fastapi_app
from app.core.config import settings
from app.db.base import Base
from app.db.session import Database

# ✅ 모델 import (Base.metadata에 테이블 등록)
import app.models  # noqa: F401


# TEST_DATABASE_URL 이 없으면 in-memory SQLite 사용
TEST_DB_URL = settings.TEST_DATABASE_URL or os.getenv("TEST_DATABASE_URL") or "sqlite://"

test_database = Database(TEST_DB_URL).open()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """테스트 전체 시작/종료 때만 스키마 생성/삭제"""
    Base.metadata.drop_all(bind=test_database.engine)
    Base.metadata.create_all(bind=test_database.engine)
    yield
    Base.metadata.drop_all(bind=test_database.engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """각 테스트마다 데이터 초기화 (테이블은 유지, row만 삭제)"""
    with test_database.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def database():
    return test_database


@pytest.fixture()
def db():
    """테스트에서 직접 DB 조작할 때 쓰는 세션"""
    session = test_database.session()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client():
    # lifespan 은 미리 넣어 둔 핸들을 재사용하고 종료 시 닫지 않는다
    fastapi_app.state.database = test_database
    with TestClient(fastapi_app) as c:
        yield c
