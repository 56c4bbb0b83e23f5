"""Subscription store implementations (in-memory and JSON file)."""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from vakit_push.domain.errors import StoreUnavailable
from vakit_push.domain.models import SUBSCRIPTION_FIELDS, Subscription, now_ms
from vakit_push.services.ports import UNSET, SubscriptionStorePort

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path.home() / ".local" / "share" / "vakit-push" / "subscriptions.json"


def _check_fields(fields: dict[str, Any]) -> None:
    invalid = (set(fields) - SUBSCRIPTION_FIELDS) | ({"id"} & set(fields))
    if invalid:
        raise ValueError(f"Güncellenemeyen alanlar: {sorted(invalid)}")


def _apply_fields(
    record: dict[str, Any],
    fields: dict[str, Any],
    expected_last_sent_at: Any,
) -> bool:
    """Alanları kayda uygula, compare-and-set tutmazsa dokunma."""
    if expected_last_sent_at is not UNSET and record.get("last_sent_at") != expected_last_sent_at:
        return False
    record.update(fields)
    record["updated_at"] = now_ms()
    return True


class InMemorySubscriptionStore(SubscriptionStorePort):
    """Bellekte abonelik deposu (testler ve tek süreçli kullanım için)."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._ids: set[str] = set()
        self._lock = asyncio.Lock()

    async def upsert(self, subscription: Subscription) -> None:
        async with self._lock:
            self._records[subscription.id] = subscription.to_dict()
            self._ids.add(subscription.id)

    async def get(self, subscription_id: str) -> Subscription | None:
        async with self._lock:
            record = self._records.get(subscription_id)
            return Subscription.from_dict(record) if record is not None else None

    async def delete(self, subscription_id: str) -> bool:
        async with self._lock:
            self._ids.discard(subscription_id)
            return self._records.pop(subscription_id, None) is not None

    async def set_fields(
        self,
        subscription_id: str,
        fields: dict[str, Any],
        *,
        expected_last_sent_at: Any = UNSET,
    ) -> bool:
        _check_fields(fields)
        async with self._lock:
            record = self._records.get(subscription_id)
            if record is None:
                return False
            return _apply_fields(record, fields, expected_last_sent_at)

    async def list_ids(self) -> list[str]:
        async with self._lock:
            return sorted(self._ids)

    async def list_active_ids(self) -> list[str]:
        async with self._lock:
            return sorted(
                sub_id
                for sub_id in self._ids
                if self._records.get(sub_id, {}).get("active", False)
            )


class JsonSubscriptionStore(SubscriptionStorePort):
    """
    JSON dosyasında abonelik deposu.

    Dosya yapısı: {"records": {id: kayıt}, "ids": [id, ...]}.
    Her yazma geçici dosyaya yapılıp yerine taşınır, böylece yarım
    yazılmış dosya okunmaz.
    """

    def __init__(self, file_path: Path | None = None) -> None:
        """
        Initialize store.

        Args:
            file_path: Depo dosyası yolu (varsayılan: ~/.local/share/vakit-push/subscriptions.json)
        """
        self._file_path = file_path or DEFAULT_STORE_PATH
        self._lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        """Depo dosyası yolu."""
        return self._file_path

    async def _ensure_dir(self) -> None:
        """Dizinin var olduğundan emin ol."""
        parent = self._file_path.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Depo dizini oluşturuldu: {parent}")

    async def _load(self) -> dict[str, Any]:
        if not self._file_path.exists():
            return {"records": {}, "ids": []}
        try:
            async with aiofiles.open(self._file_path, encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            logger.error(f"Depo okunamadı: {e}")
            raise StoreUnavailable(f"{self._file_path} okunamadı: {e}") from e

        if not content.strip():
            return {"records": {}, "ids": []}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Depo dosyası geçersiz JSON: {e}")
            raise StoreUnavailable(f"{self._file_path} geçersiz JSON: {e}") from e

        if not isinstance(data, dict):
            raise StoreUnavailable(f"{self._file_path} beklenmeyen yapı")
        data.setdefault("records", {})
        data.setdefault("ids", [])
        return data

    async def _save(self, data: dict[str, Any]) -> None:
        tmp_path = self._file_path.with_name(f".{self._file_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await self._ensure_dir()
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2))
            await aiofiles.os.replace(tmp_path, self._file_path)
        except OSError as e:
            logger.error(f"Depo yazılamadı: {e}")
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            raise StoreUnavailable(f"{self._file_path} yazılamadı: {e}") from e

    async def upsert(self, subscription: Subscription) -> None:
        async with self._lock:
            data = await self._load()
            data["records"][subscription.id] = subscription.to_dict()
            if subscription.id not in data["ids"]:
                data["ids"].append(subscription.id)
            await self._save(data)
        logger.debug(f"Abonelik kaydedildi: {subscription.id}")

    async def get(self, subscription_id: str) -> Subscription | None:
        async with self._lock:
            data = await self._load()
        record = data["records"].get(subscription_id)
        return Subscription.from_dict(record) if record is not None else None

    async def delete(self, subscription_id: str) -> bool:
        async with self._lock:
            data = await self._load()
            existed = data["records"].pop(subscription_id, None) is not None
            in_set = subscription_id in data["ids"]
            if in_set:
                data["ids"].remove(subscription_id)
            if existed or in_set:
                await self._save(data)
        if existed:
            logger.info(f"Abonelik silindi: {subscription_id}")
        return existed

    async def set_fields(
        self,
        subscription_id: str,
        fields: dict[str, Any],
        *,
        expected_last_sent_at: Any = UNSET,
    ) -> bool:
        _check_fields(fields)
        async with self._lock:
            data = await self._load()
            record = data["records"].get(subscription_id)
            if record is None:
                return False
            if not _apply_fields(record, fields, expected_last_sent_at):
                return False
            await self._save(data)
            return True

    async def list_ids(self) -> list[str]:
        async with self._lock:
            data = await self._load()
        return sorted(data["ids"])

    async def list_active_ids(self) -> list[str]:
        async with self._lock:
            data = await self._load()
        records = data["records"]
        return sorted(
            sub_id for sub_id in data["ids"] if records.get(sub_id, {}).get("active", False)
        )
