# fraudscore/infra/detectors/device_intel.py
import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import requests
from redis.asyncio import Redis

from fraudscore.core.errors import LookupUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceVerdict:
    vpn: bool = False
    emulator: bool = False


class DeviceIntelClient:
    """
    Client for the device fingerprinting / IP-intelligence provider.

    Expected provider contract:
        GET {url}?fingerprint=...&ip=...   (X-API-Key header when configured)
        -> {"vpn": bool, "proxy": bool, "emulator": bool}

    Verdicts are cached per (fingerprint, ip), in-process (at most
    `max_cache_entries`, oldest evicted first) and, when a Redis client is
    given, in Redis. Without a provider URL every device gets a
    clean verdict.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        cache_seconds: int = 900,
        max_cache_entries: int = 10000,
        request_timeout: float = 2.0,
        redis: Optional[Redis] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.cache_seconds = cache_seconds
        self.max_cache_entries = max_cache_entries
        self.request_timeout = request_timeout
        self.redis = redis
        self.session = session or requests.Session()

        self._cache: Dict[Tuple[str, str], Tuple[DeviceVerdict, datetime]] = {}
        self.last_success: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    # -----------------------------
    # Cache
    # -----------------------------
    def _cache_key(self, fingerprint: str, ip: Optional[str]) -> str:
        return f"device-intel:{fingerprint}:{ip or '-'}"

    def _cached_local(self, key: Tuple[str, str]) -> Optional[DeviceVerdict]:
        hit = self._cache.get(key)
        if hit is None:
            return None
        verdict, stored_at = hit
        if (datetime.now() - stored_at).total_seconds() < self.cache_seconds:
            return verdict
        del self._cache[key]
        return None

    def _remember(self, key: Tuple[str, str], verdict: DeviceVerdict) -> None:
        now = datetime.now()
        self._cache.pop(key, None)

        # Insertion order is age order: drop from the front while expired or full
        while self._cache:
            oldest = next(iter(self._cache))
            _, stored_at = self._cache[oldest]
            expired = (now - stored_at).total_seconds() >= self.cache_seconds
            if not expired and len(self._cache) < self.max_cache_entries:
                break
            del self._cache[oldest]

        self._cache[key] = (verdict, now)

    async def _cached_redis(self, key: str) -> Optional[DeviceVerdict]:
        if self.redis is None:
            return None
        try:
            cached = await self.redis.get(key)
        except Exception as e:
            logger.warning(f"⚠️ Device intel cache get failed: {e}")
            return None
        if not cached:
            return None
        return DeviceVerdict(**json.loads(cached))

    async def _store_redis(self, key: str, verdict: DeviceVerdict) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.setex(key, self.cache_seconds, json.dumps(asdict(verdict)))
        except Exception as e:
            logger.warning(f"⚠️ Device intel cache set failed: {e}")

    # -----------------------------
    # Provider
    # -----------------------------
    def _fetch(self, fingerprint: str, ip: Optional[str]) -> DeviceVerdict:
        headers = {"X-API-Key": self.api_key} if self.api_key else {}
        params: Dict[str, Any] = {"fingerprint": fingerprint}
        if ip:
            params["ip"] = ip

        try:
            r = self.session.get(self.url, params=params, headers=headers, timeout=self.request_timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            self.last_error = str(e)
            raise LookupUnavailableError("device_intel", str(e)) from e

        self.last_success = datetime.now()
        self.last_error = None
        return DeviceVerdict(
            vpn=bool(data.get("vpn")) or bool(data.get("proxy")),
            emulator=bool(data.get("emulator")),
        )

    async def lookup(self, fingerprint: str, ip: Optional[str] = None) -> DeviceVerdict:
        """Raises LookupUnavailableError when the provider cannot answer."""
        if not self.enabled:
            return DeviceVerdict()

        local_key = (fingerprint, ip or "")
        verdict = self._cached_local(local_key)
        if verdict is not None:
            return verdict

        redis_key = self._cache_key(fingerprint, ip)
        verdict = await self._cached_redis(redis_key)
        if verdict is None:
            # requests is blocking
            verdict = await asyncio.to_thread(self._fetch, fingerprint, ip)
            await self._store_redis(redis_key, verdict)

        self._remember(local_key, verdict)
        return verdict

    def status(self) -> Dict[str, Any]:
        if not self.enabled:
            state = "disabled"
        elif self.last_error:
            state = "error"
        else:
            state = "active"
        return {
            "state": state,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_error": self.last_error,
        }
