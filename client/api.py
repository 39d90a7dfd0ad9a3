import logging
from dataclasses import dataclass
from datetime import datetime

import httpx

from client.config import ClientSettings
from client.errors import DrawTransactionError, error_from_payload
from client.prizes import DrawResult, DrawType, PrizeBase, prize_from_payload

log = logging.getLogger(__name__)

PARTICIPANT_HEADER = "X-Participant-Id"


@dataclass(frozen=True, slots=True)
class Eligibility:
    eligible: bool
    enabled: bool
    days_remaining: int
    last_drawn_at: datetime | None


class DrawApiClient:
    """Participant-side calls to the draws API."""

    def __init__(
        self,
        participant_id: str,
        *,
        settings: ClientSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or ClientSettings()
        self.participant_id = participant_id
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            transport=transport,
            headers={PARTICIPANT_HEADER: participant_id},
        )

    async def __aenter__(self) -> "DrawApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str) -> httpx.Response:
        try:
            response = await self._client.request(method, path)
        except httpx.TimeoutException as exc:
            log.warning("%s %s timed out", method, path)
            raise DrawTransactionError("The server did not answer in time") from exc
        except httpx.HTTPError as exc:
            log.warning("%s %s failed: %s", method, path, exc)
            raise DrawTransactionError("Could not reach the server") from exc
        if response.is_success:
            return response
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        raise error_from_payload(data, response.status_code)

    async def get_feature_toggle(self, draw_type: DrawType) -> bool:
        response = await self._request("GET", f"/api/draws/{DrawType(draw_type).value}/toggle")
        return bool(response.json().get("enabled"))

    async def check_eligibility(self, draw_type: DrawType) -> Eligibility:
        response = await self._request("GET", f"/api/draws/{DrawType(draw_type).value}/eligibility")
        data = response.json()
        last = data.get("last_drawn_at")
        return Eligibility(
            eligible=bool(data["eligible"]),
            enabled=bool(data["enabled"]),
            days_remaining=int(data.get("days_remaining") or 0),
            last_drawn_at=datetime.fromisoformat(last) if last else None,
        )

    async def list_active_prizes(self, draw_type: DrawType) -> list[PrizeBase]:
        response = await self._request("GET", f"/api/draws/{DrawType(draw_type).value}/prizes")
        return [prize_from_payload(draw_type, item) for item in response.json()["items"]]

    async def execute_draw(self, draw_type: DrawType) -> DrawResult:
        # no automatic retry: a lost response may still have recorded a spin
        response = await self._request("POST", f"/api/draws/{DrawType(draw_type).value}")
        return DrawResult.from_payload(response.json())

    async def get_last_spin(self, draw_type: DrawType) -> DrawResult | None:
        try:
            response = await self._request("GET", f"/api/draws/{DrawType(draw_type).value}/last")
        except DrawTransactionError as exc:
            if exc.status_code == 404:
                return None
            raise
        return DrawResult.from_payload(response.json())
