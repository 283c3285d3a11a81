"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y autenticación para los endpoints de schemas.
- Traduce cualquier fallo de transporte a `RetrievalError` con URL y causa.
- Facilita testeo: se puede sustituir el transporte por `httpx.MockTransport`.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.config import AppSettings, HttpCredentials
from core.errors import RetrievalError


def build_async_client(
    settings: AppSettings | None = None,
    *,
    credentials: HttpCredentials | None = None,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que ambas fuentes se comporten igual.
    - Las credenciales son explícitas: no hay usuario/password por defecto.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
        "X-Requested-With": "XMLHttpRequest",
    }
    if extra_headers:
        headers.update(extra_headers)
    auth = None
    if credentials is not None:
        auth = httpx.BasicAuth(credentials.username, credentials.password)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        auth=auth,
        transport=transport,
    )


class HttpJsonFetcher:
    """Implementación de `JsonFetcher` sobre un `httpx.AsyncClient` compartido."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get(self, url: str) -> httpx.Response:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RetrievalError(
                url,
                exc.response.reason_phrase or str(exc),
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RetrievalError(url, str(exc) or exc.__class__.__name__) from exc
        return response

    async def fetch_json(self, url: str) -> Any:
        response = await self._get(url)
        try:
            return response.json()
        except ValueError as exc:
            raise RetrievalError(
                url,
                f"invalid JSON body: {exc}",
                status_code=response.status_code,
            ) from exc

    async def fetch_text(self, url: str) -> str:
        response = await self._get(url)
        return response.text
