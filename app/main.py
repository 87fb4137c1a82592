"""
main.py

FastAPI 애플리케이션 진입점(Entry Point).

이 파일은 서버 실행 시 가장 먼저 로드되며,
애플리케이션 전반의 설정과 라우터 등록을 담당한다.

주요 역할:
- FastAPI 앱 인스턴스 생성
- lifespan 에서 DB 핸들 / 감사 기록기 / 인증 캐시 / 스케줄러 생성 및 종료
- CORS 미들웨어 설정
- 도메인 예외(IdentityError) / 저장소 장애 공통 예외 핸들러
- 각 도메인별 라우터(member_auth, admin_auth, admins, members, logs) 등록
- 헬스 체크 및 DB 연결 상태 확인용 엔드포인트 제공

설계 원칙:
- 비즈니스 로직은 포함하지 않고 설정/조립 역할만 수행
- 실제 기능은 routers / services 계층에 위임
- 전역 엔진을 두지 않고 app.state.database 핸들을 주입
  (테스트에서 미리 넣어 둔 핸들은 재사용하고 닫지 않음)
- 운영 환경에서도 안전하게 상태 확인 가능하도록 health/db-ping 제공

관련 파일:
- app.core.config        : 환경 변수 및 설정 로드
- app.core.deps          : DB 세션 / 인증 의존성
- app.routers.*          : 기능별 API 라우터

"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.core.cache import PrincipalCache
from app.core.config import settings
from app.core.deps import get_database
from app.core.errors import IdentityError, StoreUnavailable
from app.core.logger import setup_logging
from app.db.session import Database
from app.routers import admin_auth, admins, logs, member_auth, members
from app.services.admin_log import AuditRecorder
from app.services.scheduler import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)

    database = getattr(app.state, "database", None)
    owns_database = database is None
    if owns_database:
        database = Database(
            settings.DATABASE_URL,
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        ).open()
        app.state.database = database

    app.state.recorder = AuditRecorder(database.session)
    app.state.principal_cache = PrincipalCache(settings.PRINCIPAL_CACHE_TTL_SECONDS)
    app.state.scheduler = start_scheduler(database) if settings.EXPIRY_JOB_ENABLED else None

    logger.info("Application started", extra={"action": "startup"})
    try:
        yield
    finally:
        shutdown_scheduler(app.state.scheduler)
        app.state.scheduler = None
        if owns_database:
            database.close()
            app.state.database = None
        logger.info("Application stopped", extra={"action": "shutdown"})


app = FastAPI(title="Society Portal Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


"""
도메인 예외 핸들러

- IdentityError 하위 예외를 {"detail": ..., **context} 로 변환
- 401 응답에는 WWW-Authenticate: Bearer 헤더 추가

"""

@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, **exc.context},
        headers=headers,
    )


# 연결 실패 / 풀 대기 시간 초과는 503 (쓰기 요청은 자동 재시도하지 않음)
@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error(
        "Store unavailable",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=StoreUnavailable.status_code, content={"detail": StoreUnavailable.default_detail})


app.include_router(member_auth.router)
app.include_router(admin_auth.router)
app.include_router(admins.router)
app.include_router(members.router)
app.include_router(logs.router)

"""
서버 헬스 체크 엔드포인트

- 애플리케이션 프로세스가 정상 동작 중인지 확인
- 로드밸런서 / 배포 환경에서 서버 상태 확인 용도

"""
@app.get("/health")
def health():
    return {"status": "ok"}

"""
데이터베이스 연결 상태 확인 엔드포인트

- 간단한 SELECT 1 쿼리를 통해 DB 연결 여부 확인
- 서버는 살아 있으나 DB가 죽은 상황을 분리해서 감지 가능 (503)

"""
@app.get("/db-ping")
def db_ping(database: Database = Depends(get_database)):
    value = database.ping()
    return {"db": "ok", "value": value}
