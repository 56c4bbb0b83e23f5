"""Shared HTTP session for upstream providers."""

import logging
from typing import Any

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from vakit_push import __version__
from vakit_push.domain.errors import ProviderError

logger = logging.getLogger(__name__)


def build_session() -> Session:
    """Kısa retry politikası ile requests oturumu oluştur."""
    retry = Retry(
        total=1,
        connect=1,
        read=1,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept": "application/json",
            "User-Agent": f"vakit-push/{__version__}",
        }
    )
    return session


def get_json(
    session: Session,
    url: str,
    *,
    provider: str,
    timeout: float,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """
    GET isteği yap ve JSON gövdesini döndür.

    Raises:
        ProviderError: Ağ hatası, non-2xx yanıt veya geçersiz JSON
    """
    try:
        response = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise ProviderError(provider, f"istek başarısız: {e}") from e

    if not response.ok:
        raise ProviderError(provider, f"HTTP {response.status_code} ({url})")

    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(provider, "geçersiz JSON yanıtı") from e
