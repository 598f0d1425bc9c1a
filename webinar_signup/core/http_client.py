from typing import Callable

import httpx
from fastapi import Depends

from webinar_signup.core.config import Settings, get_settings

HttpClientFactory = Callable[[], httpx.AsyncClient]


def get_http_client_factory(settings: Settings = Depends(get_settings)) -> HttpClientFactory:
    """Return a callable that opens a new outbound AsyncClient on each call."""

    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.outbound_timeout_seconds)

    return factory
