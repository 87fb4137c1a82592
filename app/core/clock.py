"""
clock.py

UTC 시각 유틸리티.

- 모든 시각은 timezone-aware UTC 로 다룬다
- SQLite 처럼 timezone 정보를 저장하지 않는 DB에서 읽어 온 naive datetime 은
  UTC 로 간주하여 비교 가능하게 맞춘다
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
