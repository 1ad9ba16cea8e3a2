"""Client for the Expo push notification gateway."""

from __future__ import annotations

from typing import Protocol, Sequence

import httpx

from campus_push.domain.models import PushMessage
from campus_push.errors import DispatchError
from campus_push.log import get_logger

logger = get_logger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class PushGateway(Protocol):
    def send(self, messages: Sequence[PushMessage]) -> None: ...


class ExpoPushGateway:
    """Sends batches of push messages to Expo in a single POST.

    Delivery is best-effort: per-message tickets in the response are logged,
    not inspected. Any transport failure or non-2xx status raises
    ``DispatchError``.
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str = EXPO_PUSH_URL,
        access_token: str | None = None,
    ) -> None:
        self.client = client
        self.url = url
        self.access_token = access_token

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def send(self, messages: Sequence[PushMessage]) -> None:
        if not messages:
            return

        payload = [m.to_payload() for m in messages]
        try:
            response = self.client.post(self.url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DispatchError(
                f"Expo push API returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DispatchError(f"Expo push API request failed: {exc}") from exc

        logger.info("Expo API response: %s", response.text)

    def close(self) -> None:
        self.client.close()
