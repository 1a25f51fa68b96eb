# traefik_registrar/clients/registrant.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

import httpx
import orjson
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
    wait_random,
)

from traefik_registrar.config import Settings
from traefik_registrar.clients.http_utils import new_http_client
from traefik_registrar.errors import (
    PermanentRegistrationError,
    RegistrationError,
    RegistrationHTTPStatusError,
    RegistrationNetworkError,
    TransientRegistrationError,
)
from traefik_registrar.models import RegistrantDefinitionPath, RegistrantEntry

logger = logging.getLogger("traefik_registrar.clients.registrant")

SUCCESS_STATUSES = frozenset({200, 201, 202})

RegistrantItem = Union[RegistrantEntry, RegistrantDefinitionPath]


class Registrant:
    """
    POSTs capabilities to Meshery one at a time.

    Each item is loaded (if it is still a path) and serialised before any
    request is made, so a malformed definition fails without touching the
    network. Transient failures (transport errors, non 200/201/202 answers)
    are retried with exponential backoff until `max_elapsed_seconds` have
    passed since the first attempt for that item; the last failure is then
    surfaced as RegistrationError. Processing stops at the first item that
    cannot be registered.
    """

    def __init__(
        self,
        items: Iterable[RegistrantItem],
        url: str,
        *,
        max_elapsed_seconds: float = 600.0,
        initial_backoff_seconds: float = 0.5,
        max_backoff_seconds: float = 60.0,
        backoff_jitter_seconds: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.items: List[RegistrantItem] = list(items)
        self.url = url
        self.max_elapsed_seconds = max_elapsed_seconds
        self.initial_backoff_seconds = initial_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.backoff_jitter_seconds = backoff_jitter_seconds
        self._client = client
        self._settings = settings

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        items: Iterable[RegistrantItem],
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "Registrant":
        return cls(
            items,
            url,
            max_elapsed_seconds=settings.registration_max_elapsed_seconds,
            initial_backoff_seconds=settings.registration_initial_backoff_seconds,
            max_backoff_seconds=settings.registration_max_backoff_seconds,
            backoff_jitter_seconds=settings.registration_backoff_jitter_seconds,
            client=client,
            settings=settings,
        )

    async def register(self) -> int:
        """Send every item; returns how many were accepted."""
        if not self.items:
            return 0

        if self._client is not None:
            return await self._register_all(self._client)

        async with new_http_client(self._settings or Settings()) as client:
            return await self._register_all(client)

    async def _register_all(self, client: httpx.AsyncClient) -> int:
        registered = 0
        for item in self.items:
            entry = item.load() if isinstance(item, RegistrantDefinitionPath) else item
            body = _serialise(entry)
            await self._send_with_retry(client, body)
            registered += 1
            logger.debug("Registered %s at %s", _entry_label(entry), self.url)
        return registered

    async def _send_with_retry(self, client: httpx.AsyncClient, body: bytes) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_delay(self.max_elapsed_seconds),
            wait=wait_exponential(
                multiplier=self.initial_backoff_seconds,
                max=self.max_backoff_seconds,
                exp_base=1.5,
            )
            + wait_random(0, self.backoff_jitter_seconds),
            retry=retry_if_exception_type(TransientRegistrationError),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._post(client, body)
        except TransientRegistrationError as e:
            raise RegistrationError(url=e.url, message=e.message, status=e.status) from e

    async def _post(self, client: httpx.AsyncClient, body: bytes) -> None:
        try:
            resp = await client.post(self.url, content=body, headers={"Content-Type": "application/json"})
        except httpx.TransportError as e:
            raise RegistrationNetworkError(url=self.url, message=str(e) or type(e).__name__) from e

        if resp.status_code not in SUCCESS_STATUSES:
            raise RegistrationHTTPStatusError(
                url=self.url,
                status=resp.status_code,
                message=(
                    f"register process failed, host returned status: "
                    f"{resp.reason_phrase} with status code {resp.status_code}"
                ),
            )


def _serialise(entry: RegistrantEntry) -> bytes:
    try:
        return orjson.dumps(entry.wire_payload())
    except (TypeError, ValueError) as e:
        raise PermanentRegistrationError(f"cannot serialise {_entry_label(entry)}: {e}") from e


def _entry_label(entry: RegistrantEntry) -> str:
    meta = entry.definition.get("metadata") if isinstance(entry.definition, dict) else None
    if isinstance(meta, dict) and meta.get("name"):
        return str(meta["name"])
    return "<unnamed definition>"
