"""Push notification transports."""
from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

import aiohttp

from ..config import OneSignalConfig
from ..errors import DispatchFailure

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeliveryResult:
    """Outcome reported by the transport for one notification."""

    notification_id: Optional[str]
    recipients: Tuple[str, ...] = ()
    errors: Any = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.notification_id) and not self.errors

    @classmethod
    def from_onesignal(cls, payload: Mapping[str, Any], recipients: Sequence[str]) -> "DeliveryResult":
        return cls(
            notification_id=payload.get("id") or None,
            recipients=tuple(recipients),
            errors=payload.get("errors") or None,
            raw=dict(payload),
        )


class NotificationSender:
    """Abstraction over the push delivery service."""

    async def send(
        self,
        recipient_tokens: Sequence[str],
        title: str,
        body: str,
        data: Mapping[str, str],
    ) -> DeliveryResult:  # pragma: no cover - interface method
        raise NotImplementedError

    async def close(self) -> None:
        return None


class ConsoleNotificationSender(NotificationSender):
    """Development sender that only logs the notification."""

    async def send(
        self,
        recipient_tokens: Sequence[str],
        title: str,
        body: str,
        data: Mapping[str, str],
    ) -> DeliveryResult:
        _logger.info(
            "[DEV] would push to %s: %s | %s | %s",
            ", ".join(recipient_tokens),
            title,
            body.replace("\n", " / "),
            dict(data),
        )
        return DeliveryResult(notification_id=f"console-{uuid4()}", recipients=tuple(recipient_tokens))


class _TransientError(Exception):
    def __init__(self, reason: str, *, delay: float | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.delay = delay


class OneSignalSender(NotificationSender):
    """Send push notifications through the OneSignal REST API.

    Network errors, timeouts, HTTP 429 and 5xx responses are retried with
    exponential backoff. Any other non-success answer fails immediately with
    :class:`DispatchFailure`.
    """

    def __init__(
        self,
        config: OneSignalConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not config.enabled:
            raise ValueError("OneSignal app id and REST API key are required")
        self._config = config
        self._session = session
        self._owns_session = session is None

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def _build_payload(
        self,
        recipient_tokens: Sequence[str],
        title: str,
        body: str,
        data: Mapping[str, str],
    ) -> dict[str, Any]:
        return {
            "app_id": self._config.app_id,
            "include_subscription_ids": list(recipient_tokens),
            "headings": {"en": title, "he": title},
            "contents": {"en": body, "he": body},
            "data": dict(data),
            "priority": 10,
            "android_sound": "default",
            "ios_sound": "default",
        }

    async def send(
        self,
        recipient_tokens: Sequence[str],
        title: str,
        body: str,
        data: Mapping[str, str],
    ) -> DeliveryResult:
        if not recipient_tokens:
            raise DispatchFailure("No recipient tokens given")
        payload = self._build_payload(recipient_tokens, title, body, data)
        retry = self._config.retry
        label = data.get("type", "notification")

        last_exc: BaseException | None = None
        for attempt in range(1, retry.attempts + 1):
            try:
                response = await self._post(payload)
            except _TransientError as exc:
                last_exc = exc
                if attempt >= retry.attempts:
                    break
                delay = exc.delay if exc.delay is not None else self._compute_retry_delay(attempt)
                _logger.warning(
                    "Retrying OneSignal %s request in %.2fs (%s, attempt %s/%s)",
                    label,
                    delay,
                    exc.reason,
                    attempt,
                    retry.attempts,
                )
                await asyncio.sleep(delay)
                continue

            result = DeliveryResult.from_onesignal(response, recipient_tokens)
            if not result.success:
                raise DispatchFailure(
                    f"OneSignal rejected {label} notification: {result.errors or 'no notification id'}",
                    errors=result.errors,
                )
            _logger.debug("OneSignal accepted %s notification %s", label, result.notification_id)
            return result

        _logger.warning(
            "OneSignal %s request failed after %s attempts (%s)", label, retry.attempts, last_exc
        )
        raise DispatchFailure(f"OneSignal request failed: {last_exc}") from last_exc

    async def _post(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        session = self._get_session()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Key {self._config.api_key}",
        }
        try:
            async with session.post(
                self._config.api_url,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._config.timeout),
            ) as response:
                text = await response.text()
                status = response.status
                retry_after = response.headers.get("Retry-After")
        except asyncio.TimeoutError as exc:
            raise _TransientError("timeout") from exc
        except aiohttp.ClientError as exc:
            raise _TransientError(f"network: {exc}") from exc

        try:
            body = json.loads(text) if text else {}
        except ValueError:
            body = {"errors": [text]}
        if not isinstance(body, dict):
            body = {"errors": [body]}

        if status == 429:
            delay = None
            if retry_after is not None:
                try:
                    delay = min(float(retry_after), self._config.retry.max_delay)
                except ValueError:
                    delay = None
            raise _TransientError("429", delay=delay)
        if status >= 500:
            raise _TransientError(f"{status}")
        if status >= 400:
            raise DispatchFailure(
                f"OneSignal answered HTTP {status}: {body.get('errors') or text}",
                errors=body.get("errors"),
            )
        return body

    def _compute_retry_delay(self, attempts: int) -> float:
        retry = self._config.retry
        base_delay = retry.delay * (2 ** max(0, attempts - 1))
        capped = min(base_delay, retry.max_delay)
        jitter = 0.0
        if retry.jitter > 0:
            jitter = random.uniform(0, capped * retry.jitter)
        return capped + jitter


def create_sender(config: OneSignalConfig) -> NotificationSender:
    if config.enabled:
        return OneSignalSender(config)
    _logger.warning("OneSignal credentials are not set; notifications will only be logged")
    return ConsoleNotificationSender()


__all__ = [
    "ConsoleNotificationSender",
    "DeliveryResult",
    "NotificationSender",
    "OneSignalSender",
    "create_sender",
]
