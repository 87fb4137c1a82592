"""
session.py

데이터베이스 핸들(Database) 관리 파일.

SQLAlchemy Engine 과 세션 팩토리를 하나의 핸들 객체로 묶어
명시적으로 열고(open) 닫는(close) 수명 주기를 제공한다.
전역 엔진을 import 하지 않고, 앱 lifespan 에서 생성한 핸들을
app.state.database 로 주입받아 사용한다.

설계 원칙:
- DB 연결 설정은 한 곳에서만 정의
- 세션 생성/종료 책임을 명확히 분리
- pool_pre_ping=True로 유휴 연결 오류 방지
- 연결/풀 대기 시간에 상한을 두어 저장소 장애 시 빠르게 실패(503)

관련 파일:
- app.core.config        : DATABASE_URL / 타임아웃 설정
- app.core.deps          : get_db 의존성
- app.main               : lifespan 에서 open / close

"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _engine_options(url: str, *, connect_timeout: int, pool_timeout: int) -> dict:
    parsed = make_url(url)
    backend = parsed.get_backend_name()

    options: dict = {"pool_pre_ping": True}

    if backend == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        # in-memory SQLite 는 커넥션마다 DB가 따로 생기므로 단일 커넥션 공유
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    else:
        options["pool_timeout"] = pool_timeout
        if backend == "postgresql":
            options["connect_args"] = {"connect_timeout": connect_timeout}

    return options


class Database:
    def __init__(self, url: str, *, connect_timeout: int = 10, pool_timeout: int = 30):
        self.url = url
        self.connect_timeout = connect_timeout
        self.pool_timeout = pool_timeout
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Database":
        if self._engine is not None:
            return self

        self._engine = create_engine(
            self.url,
            **_engine_options(
                self.url,
                connect_timeout=self.connect_timeout,
                pool_timeout=self.pool_timeout,
            ),
        )
        # 요청 단위로 사용할 세션 팩토리
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self._engine,
        )
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()

    def ping(self) -> int:
        with self.session() as db:
            return db.execute(text("SELECT 1")).scalar_one()
