# ==============================================
# File: specguard/services/event_client.py
# Description: Audit event client (observer of compliance verdicts)
# ==============================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from specguard.config import settings
from specguard.core.compliance_types import ComplianceVerdict

logger = logging.getLogger(__name__)

COMPLIANCE_CHECK_EVENT = "compliance.check.completed"
TOKEN_PATH = "/oauth/token"
EVENTS_PATH = "/api/events"


@dataclass
class TokenCache:
    """Single OAuth access token with its absolute expiry (epoch seconds)."""
    access_token: str
    token_type: str
    expires_at: float

    def is_fresh(self, now: float, skew: float) -> bool:
        return self.expires_at - now >= skew


class EventAPIClient:
    """
    Posts audit events to the external Event API.

    The token cache may be handed in by the owner (and inspected after
    calls); a token is reused until it is within `skew_seconds` of expiry.
    send_event never raises: a broken event bus must not change a
    compliance response.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        skew_seconds: Optional[float] = None,
        timeout: Optional[float] = None,
        source: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        token_cache: Optional[TokenCache] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.event_api_base_url or "").rstrip("/")
        self.client_id = client_id if client_id is not None else settings.event_api_client_id or ""
        self.client_secret = client_secret if client_secret is not None else settings.event_api_client_secret or ""
        self.skew_seconds = settings.event_token_skew_seconds if skew_seconds is None else skew_seconds
        self.timeout = timeout or settings.event_timeout_seconds
        self.source = source or settings.event_source
        self.token_cache: Optional[TokenCache] = token_cache
        self._transport = transport
        self._clock = clock

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        """Return the cached token, or fetch one with the client-credentials grant."""
        now = self._clock()
        if self.token_cache is not None and self.token_cache.is_fresh(now, self.skew_seconds):
            return self.token_cache.access_token

        response = await client.post(TOKEN_PATH, json={
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        })
        response.raise_for_status()
        data = response.json()

        self.token_cache = TokenCache(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_at=now + float(data.get("expires_in", 0)),
        )
        logger.debug(f"[EventAPI] Token refreshed, expires in {data.get('expires_in')}s")
        return self.token_cache.access_token

    async def send_event(self, payload: Dict[str, Any]) -> bool:
        """
        Post one event. Returns True when the Event API accepted it.

        Skips (returns False) when no base URL is configured.
        """
        if not self.configured:
            logger.debug("[EventAPI] Not configured, skipping event logging")
            return False

        event = {
            **payload,
            "timestamp": payload.get("timestamp") or datetime.now(timezone.utc).isoformat(),
            "source": self.source,
        }

        try:
            async with self._client() as client:
                token = await self.get_access_token(client)
                response = await client.post(
                    EVENTS_PATH,
                    json=event,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[EventAPI] Event request failed: {e.response.status_code} - {e.response.text}"
            )
            return False
        except Exception as e:
            logger.error(f"[EventAPI] Failed to log event: {type(e).__name__}: {e}")
            return False

        logger.info(f"[EventAPI] Event logged: {event.get('eventType')}")
        return True

    async def log_compliance_check(self, workspace_id: str, user_id: str, verdict: ComplianceVerdict) -> bool:
        return await self.send_event({
            "eventType": COMPLIANCE_CHECK_EVENT,
            "workspaceId": workspace_id,
            "userId": user_id,
            "metadata": {
                "frameworks": list(verdict.analyzed_frameworks),
                "severity": verdict.overall_compliance,
                "violationCount": len(verdict.violations),
                "hasBlockingViolations": verdict.blocks_generation,
            },
        })
