"""
cache.py

인증 주체(Principal) 단기 캐시.

세션 토큰을 검증할 때마다 DB에서 계정을 다시 읽는 왕복을 줄이기 위한
로컬 최적화이며, 정확성을 보장하는 공유 상태가 아니다.

설계 원칙:
- 키는 토큰 지문(sha256), 값은 Principal 스냅샷
- 항목 수명은 min(TTL, 토큰 만료 시각)
- 로그아웃 시 토큰 단위로, 비밀번호/역할/상태/권한 변경 시 주체 단위로 무효화
- 무효화가 누락되더라도 오래된 정보가 보이는 시간은 TTL 로 제한된다
- ttl_seconds <= 0 이면 캐시를 사용하지 않음

"""

import threading
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from app.core.clock import as_utc, utcnow
from app.core.policy import Principal


class PrincipalCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Principal]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: str) -> Optional[Principal]:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, principal = entry
            expired = self._clock() - stored_at >= self.ttl_seconds
            token_expired = principal.expires_at is not None and as_utc(principal.expires_at) <= utcnow()
            if expired or token_expired:
                del self._entries[key]
                return None
            return principal

    def put(self, key: str, principal: Principal) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self._clock(), principal)

    def invalidate_token(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_principal(self, principal_id: uuid.UUID) -> int:
        with self._lock:
            stale = [k for k, (_, p) in self._entries.items() if p.id == principal_id]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
