"""
config.py

애플리케이션 전역 설정(Configuration) 관리 파일.

이 파일은 .env 환경 변수들을 Pydantic BaseSettings를 통해 로드하여
애플리케이션 전반에서 공통으로 사용하는 설정 값을 제공한다.

주요 설정 항목:
- 데이터베이스 연결 정보 및 타임아웃
- JWT 서명 키와 토큰 용도(session / password_reset / password_setup)별 만료 정책
- bcrypt 해시 비용(회원 / 관리자)
- 관리자 로그인 잠금 정책
- 인증 캐시 TTL, 회원 자격 만료 작업 스케줄
- CORS 허용 도메인 목록

설계 원칙:
- 모든 환경 변수는 이 파일을 통해서만 접근
- 로컬 / 테스트 / 운영 환경을 .env로 분리하여 관리
- 설정 값은 런타임 중 변경되지 않는 불변 객체로 취급
- 운영(production) 환경에서는 개발용 기본 시크릿 키 사용을 거부

관련 파일:
- app.main               : CORS / 로깅 / 스케줄러 초기화 시 설정 사용
- app.core.security      : JWT 시크릿 / 만료 / 해시 비용 설정 사용
- app.db.session         : DATABASE_URL 사용

"""

from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 로컬 개발 전용 서명 키. 운영 환경에서는 Settings 생성 단계에서 거부된다.
DEV_SECRET_KEY = "dev-only-insecure-secret-change-me"


# .env 파일에 정의된 환경 변수를 로드하는 설정 클래스
# extra="ignore" 옵션으로 정의되지 않은 환경 변수는 무시
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENVIRONMENT: str = "development"

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None
    DB_CONNECT_TIMEOUT: int = 10  # seconds
    DB_POOL_TIMEOUT: int = 30  # seconds

    SECRET_KEY: str = DEV_SECRET_KEY
    ALGORITHM: str = "HS256"

    MEMBER_SESSION_EXPIRE_MINUTES: int = 24 * 60
    ADMIN_SESSION_EXPIRE_MINUTES: int = 120
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    PASSWORD_SETUP_EXPIRE_HOURS: int = 24

    # bcrypt cost factor
    MEMBER_BCRYPT_ROUNDS: int = 10
    ADMIN_BCRYPT_ROUNDS: int = 12

    # 관리자 로그인 실패 잠금
    ADMIN_MAX_LOGIN_ATTEMPTS: int = 5
    ADMIN_LOCKOUT_MINUTES: int = 30

    # 인증 주체(principal) 캐시. 0이면 캐시 사용 안 함
    PRINCIPAL_CACHE_TTL_SECONDS: int = 30

    MEMBERSHIP_TERM_DAYS: int = 365
    MEMBERSHIP_NUMBER_PREFIX: str = "BSPCP"

    # 회원 자격 만료 작업 (APScheduler)
    EXPIRY_JOB_ENABLED: bool = False
    EXPIRY_JOB_INTERVAL_HOURS: int = 24

    # 비밀번호 설정/재설정 링크 생성용 프론트엔드 주소
    FRONTEND_URL: str = "http://localhost:5173"

    LOG_LEVEL: str = "INFO"

    # CORS 허용 도메인 (프론트엔드 주소)
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @model_validator(mode="after")
    def _reject_dev_secret_in_production(self):
        if self.is_production and (not self.SECRET_KEY or self.SECRET_KEY == DEV_SECRET_KEY):
            raise ValueError("SECRET_KEY must be set explicitly in production")
        return self


# 애플리케이션 전역에서 import하여 사용하는 Settings 인스턴스
# 실행 시 한 번만 생성됨
settings = Settings()
