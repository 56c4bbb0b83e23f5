"""Regional prayer time provider client (Bønnetid API)."""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from requests import Session

from vakit_push.domain.errors import ProviderError
from vakit_push.domain.models import LocationRecord, PrayerName
from vakit_push.infrastructure.http import build_session, get_json
from vakit_push.services.normalizer import map_timings
from vakit_push.services.ports import LocationCatalogPort

logger = logging.getLogger(__name__)

PROVIDER_NAME = "bonnetid"

_DMY_RE = re.compile(r"^(\d{1,2})[-./](\d{1,2})[-./](\d{4})$")


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def _as_list(payload: Any, *keys: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def parse_locations(payload: Any) -> list[LocationRecord]:
    """Katalog yanıtını LocationRecord listesine çevir. Tanınmayan kayıtlar atlanır."""
    records = []
    for item in _as_list(payload, "results", "locations", "data"):
        if not isinstance(item, Mapping):
            continue
        location_id = item.get("id", item.get("pk"))
        if location_id is None or str(location_id).strip() == "":
            continue
        records.append(
            LocationRecord(
                id=str(location_id),
                lat=_to_float(item.get("lat", item.get("latitude"))),
                lon=_to_float(item.get("lon", item.get("lng", item.get("longitude")))),
                name=str(item.get("name") or ""),
            )
        )
    return records


def _row_date(row: Mapping[str, Any], year: int, month: int) -> date | None:
    for key in ("date", "dato", "day", "dag"):
        value = row.get(key)
        if value is None or isinstance(value, bool):
            continue
        text = str(value).strip()
        try:
            if text.isdigit():
                return date(year, month, int(text))
            if len(text) >= 10 and text[4] == "-":
                return datetime.fromisoformat(text[:10]).date()
            match = _DMY_RE.match(text)
            if match:
                return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        except ValueError:
            continue
    return None


def parse_month_table(payload: Any, year: int, month: int) -> dict[date, dict[PrayerName, str]]:
    """
    Aylık vakit tablosunu gün -> vakitler eşlemesine çevir.

    Satırda tarih alanı yoksa satır sırası gün numarası olarak kullanılır.
    """
    table: dict[date, dict[PrayerName, str]] = {}
    for index, row in enumerate(_as_list(payload, "data", "results", "rows", "prayertimes")):
        if not isinstance(row, Mapping):
            continue
        row_date = _row_date(row, year, month)
        if row_date is None:
            try:
                row_date = date(year, month, index + 1)
            except ValueError:
                continue
        timings = map_timings(row)
        if any(timings.values()):
            table[row_date] = timings
    return table


class BonnetidClient(LocationCatalogPort):
    """Bønnetid REST API istemcisi."""

    name = PROVIDER_NAME

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: API kök adresi (şema verilmezse https varsayılır)
            token: Statik API anahtarı
            session: Paylaşılan requests oturumu
            timeout: İstek zaman aşımı (saniye)
        """
        root = base_url.strip()
        if not re.match(r"^https?://", root, re.IGNORECASE):
            root = f"https://{root}"
        self._root = root.split("?", 1)[0].rstrip("/")
        self._token = token.strip()
        self._session = session or build_session()
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        """API anahtarı tanımlı mı?"""
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        if not self.is_configured:
            raise ProviderError(PROVIDER_NAME, "API anahtarı tanımlı değil")
        return {
            "Accept": "application/json",
            "Api-Token": self._token,
            "X-API-Key": self._token,
        }

    def list_locations(self) -> list[LocationRecord]:
        """Tüm referans konumları getir."""
        payload = get_json(
            self._session,
            f"{self._root}/locations/",
            provider=PROVIDER_NAME,
            timeout=self._timeout,
            headers=self._headers(),
        )
        return parse_locations(payload)

    def fetch_month(
        self, location_id: str, year: int, month: int
    ) -> dict[date, dict[PrayerName, str]]:
        """Bir konumun aylık vakit tablosunu getir."""
        payload = get_json(
            self._session,
            f"{self._root}/prayertimes/{location_id}/{year}/{month}/",
            provider=PROVIDER_NAME,
            timeout=self._timeout,
            headers=self._headers(),
        )
        if not isinstance(payload, (list, Mapping)):
            raise ProviderError(PROVIDER_NAME, "geçersiz vakit tablosu")
        table = parse_month_table(payload, year, month)
        logger.info(f"Bønnetid tablosu alındı: konum={location_id} {year}-{month:02d} ({len(table)} gün)")
        return table
