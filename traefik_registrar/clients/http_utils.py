# traefik_registrar/clients/http_utils.py
from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_random

from traefik_registrar.config import Settings

logger = logging.getLogger("traefik_registrar.clients.http")


def new_http_client(
    settings: Settings,
    *,
    base_url: str = "",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    AsyncClient with the adapter's timeouts and identity headers.
    `transport` lets callers (and tests) swap the network layer.
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=settings.http_client_timeout_seconds,
        transport=transport,
        follow_redirects=True,
        headers={
            "User-Agent": f"meshery-traefik-mesh/{settings.service_version}",
        },
    )


class ServiceClientError(RuntimeError):
    def __init__(self, *, service: str, status: int, url: str, body: str) -> None:
        super().__init__(f"{service} HTTP {status}: {url} :: {body[:500]}")
        self.service = service
        self.status = status
        self.url = url
        self.body = body


def _raise_for_status(service: str, resp: httpx.Response) -> None:
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        # keep body for debugging (limited)
        body = ""
        try:
            body = resp.text
        except Exception:
            pass
        raise ServiceClientError(service=service, status=resp.status_code, url=str(resp.request.url), body=body) from e


# A conservative retry wrapper for idempotent GETs only
def retryable_get(fn):
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2.0) + wait_random(0, 0.2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )(fn)
