"""Upstream vakit alanlarını kanonik HH:MM biçimine çeviren yardımcılar.

Bu modüldeki fonksiyonlar asla exception fırlatmaz: çözülemeyen değerler boş
string olarak döner, böylece çağıran taraf "vakit yok" durumunu tek tip ele
alabilir.
"""

import re
import unicodedata
from collections.abc import Mapping
from typing import Any

from vakit_push.domain.models import PrayerName

_CLOCK_RE = re.compile(r"^(\d{1,2})[:.](\d{2})(?::\d{2})?(?:\s*\(.*\))?$")
_LEADING_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})")

# Vakit başına kabul edilen alan adları (sağlayıcılar arası eş anlamlılar)
PRAYER_ALIASES: dict[PrayerName, tuple[str, ...]] = {
    PrayerName.FAJR: ("fajr", "fajr_sadiq", "Morgengry 16°", "Morgengry"),
    PrayerName.SUNRISE: ("shuruq_sunrise", "sunrise", "shuruq", "Soloppgang"),
    PrayerName.DHUHR: ("dhuhr", "duhr", "zuhr"),
    PrayerName.ASR: ("asr", "2x-skygge", "asr_2x", "1x-skygge"),
    PrayerName.MAGHRIB: ("maghrib", "magrib"),
    PrayerName.ISHA: ("isha",),
}

# Zarf şekilleri: timings, data.timings, result.timings, data, result
_ENVELOPES: tuple[tuple[str, ...], ...] = (
    ("timings",),
    ("data", "timings"),
    ("result", "timings"),
    ("data",),
    ("result",),
)


def _format(hours: int, minutes: int) -> str:
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return ""
    return f"{hours:02d}:{minutes:02d}"


def to_hhmm(value: Any) -> str:
    """
    Herhangi bir saat gösterimini kanonik HH:MM'e çevir.

    "5:07", "05.07", "05:07:00", "05:07 (CET)" -> "05:07"

    Returns:
        Sıfır dolgulu 24 saat biçimi veya çözülemezse ""
    """
    if value is None or isinstance(value, bool):
        return ""
    text = str(value).strip()
    if not text:
        return ""

    match = _CLOCK_RE.match(text) or _LEADING_CLOCK_RE.match(text)
    if not match:
        return ""
    return _format(int(match.group(1)), int(match.group(2)))


def normalize_field_key(key: Any) -> str:
    """Alan adını karşılaştırma için sadeleştir (aksan, büyük harf, noktalama)."""
    decomposed = unicodedata.normalize("NFKD", str(key or ""))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]", "", stripped.lower())


def _create_lookup(source: Any) -> dict[str, str]:
    lookup: dict[str, str] = {}
    if not isinstance(source, Mapping):
        return lookup
    for key, value in source.items():
        if value is None or isinstance(value, (Mapping, list)):
            continue
        text = str(value).strip()
        if text:
            lookup.setdefault(normalize_field_key(key), text)
    return lookup


def _pick(lookup: dict[str, str], aliases: tuple[str, ...]) -> str:
    for alias in aliases:
        value = lookup.get(normalize_field_key(alias))
        if value:
            hhmm = to_hhmm(value)
            if hhmm:
                return hhmm
    return ""


def _unwrap(raw: Any) -> Any:
    if not isinstance(raw, Mapping):
        return raw
    for path in _ENVELOPES:
        node: Any = raw
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, Mapping) and node:
            return node
    return raw


def map_timings(raw: Any) -> dict[PrayerName, str]:
    """
    Herhangi bir kabul edilen upstream şeklini vakit eşlemesine çevir.

    Tanınmayan girdi için tüm değerler "" olur.
    """
    lookup = _create_lookup(_unwrap(raw))
    return {prayer: _pick(lookup, aliases) for prayer, aliases in PRAYER_ALIASES.items()}
