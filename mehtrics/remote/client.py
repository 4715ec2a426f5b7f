"""mehtrics.remote.client

HTTP client for the tracker's REST API.

One call, one attempt. Retrying is the offline queue's job: a failed write is
queued and replayed in order, so retrying here would only reorder things.

Failure mapping:
- transport errors and timeouts -> RemoteUnavailableError
- non-2xx responses            -> RemoteRejectedError(status)

Success is decided by the status code alone. A 2xx whose body is empty or does
not parse as the entity is still a stored write; the call returns None instead
of raising, so nothing upstream sends it again.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from mehtrics import __version__
from mehtrics.core.config import RemoteConfig
from mehtrics.core.exceptions import RemoteRejectedError, RemoteUnavailableError
from mehtrics.remote.models import (
    CreateJournalEntryRequest,
    CreateMoodEntryRequest,
    CreateTaskRequest,
    JournalEntry,
    MoodEntry,
    Task,
    UpdateJournalEntryRequest,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseModel)


class RemoteApi:
    def __init__(
        self,
        config: RemoteConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or RemoteConfig()
        headers = {"User-Agent": f"mehtrics/{__version__}", "Accept": "application/json"}
        if self.config.auth_token:
            headers["Authorization"] = f"Bearer {self.config.auth_token}"
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_s,
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"{method} {path}: timed out") from e
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{method} {path}: {e}") from e

        if resp.is_error:
            logger.warning(
                "remote_request_rejected",
                extra={"method": method, "path": path, "status": resp.status_code},
            )
            raise RemoteRejectedError(resp.status_code, f"{method} {path}: HTTP {resp.status_code}")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning(
                "remote_response_not_json",
                extra={"method": method, "path": path, "status": resp.status_code},
            )
            return None

    async def health(self) -> bool:
        try:
            await self.request_json("GET", self.config.health_path)
        except (RemoteUnavailableError, RemoteRejectedError):
            return False
        return True

    def _entity(self, model: type[E], data: Any, method: str, path: str) -> E | None:
        if data is None:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "remote_response_unparsed",
                extra={"method": method, "path": path, "model": model.__name__, "errors": e.error_count()},
            )
            return None

    async def create_task(self, req: CreateTaskRequest) -> Task | None:
        data = await self.request_json("POST", "/tasks", json=req.to_wire())
        return self._entity(Task, data, "POST", "/tasks")

    async def create_mood_entry(self, req: CreateMoodEntryRequest) -> MoodEntry | None:
        data = await self.request_json("POST", "/mood-entries", json=req.to_wire())
        return self._entity(MoodEntry, data, "POST", "/mood-entries")

    async def create_journal_entry(self, req: CreateJournalEntryRequest) -> JournalEntry | None:
        data = await self.request_json("POST", "/journal-entries", json=req.to_wire())
        return self._entity(JournalEntry, data, "POST", "/journal-entries")

    async def update_journal_entry(self, req: UpdateJournalEntryRequest) -> JournalEntry | None:
        path = f"/journal-entries/{req.id}"
        data = await self.request_json("PUT", path, json=req.to_wire(exclude={"id"}))
        return self._entity(JournalEntry, data, "PUT", path)
