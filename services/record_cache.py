import copy
import json
import threading
import time
from typing import Any, Dict, Hashable, Optional, Tuple


class RecordCache:
    """테이블 단위로 무효화되는 조회 결과 TTL 캐시"""

    def __init__(self, ttl_seconds: int = 30):
        self.ttl = ttl_seconds
        self._entries: Dict[Tuple[str, Hashable], Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(**params) -> str:
        # 파라미터 순서와 무관하게 같은 키가 나오도록 정렬해서 직렬화
        return json.dumps(params, sort_keys=True, ensure_ascii=False, default=str)

    def get(self, table: str, key: Hashable) -> Optional[Any]:
        if self.ttl <= 0:
            return None
        with self._lock:
            entry = self._entries.get((table, key))
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at < time.monotonic():
                del self._entries[(table, key)]
                return None
            return copy.deepcopy(value)

    def set(self, table: str, key: Hashable, value: Any) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._entries[(table, key)] = (time.monotonic() + self.ttl, copy.deepcopy(value))

    def invalidate(self, table: str) -> None:
        with self._lock:
            for cache_key in [k for k in self._entries if k[0] == table]:
                del self._entries[cache_key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
