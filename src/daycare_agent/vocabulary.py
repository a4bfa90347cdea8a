"""Canonical stored enumerations and the free-text synonyms that map onto them.

Values that match no synonym pass through unchanged (stripped) so callers can
still use them as literal substring filters.
"""

from __future__ import annotations

from typing import Mapping, Sequence

GENDERS = ("Laki-laki", "Perempuan")
PAYMENT_STATUSES = ("Tertunda", "Terkirim", "Dibayar", "Ditolak", "Jatuh Tempo")
PAYMENT_CATEGORIES = ("Bulanan", "Semester", "Registrasi")
DEVELOPMENT_LABELS = ("Belum Konsisten", "Konsisten", "Tidak Teramati")
MOTOR_LABELS = ("Bantuan Fisik", "Bantuan Verbal", "Mandiri", "Tidak Teramati")
DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

STATUS_PENDING = "Tertunda"
STATUS_OVERDUE = "Jatuh Tempo"

GENDER_SYNONYMS: Mapping[str, str] = {
    "male": "Laki-laki",
    "boy": "Laki-laki",
    "laki": "Laki-laki",
    "laki-laki": "Laki-laki",
    "laki laki": "Laki-laki",
    "pria": "Laki-laki",
    "female": "Perempuan",
    "girl": "Perempuan",
    "perempuan": "Perempuan",
    "wanita": "Perempuan",
}

PAYMENT_STATUS_SYNONYMS: Mapping[str, str] = {
    "pending": "Tertunda",
    "unpaid": "Tertunda",
    "tertunda": "Tertunda",
    "belum dibayar": "Tertunda",
    "sent": "Terkirim",
    "submitted": "Terkirim",
    "terkirim": "Terkirim",
    "paid": "Dibayar",
    "dibayar": "Dibayar",
    "lunas": "Dibayar",
    "rejected": "Ditolak",
    "ditolak": "Ditolak",
    "overdue": "Jatuh Tempo",
    "late": "Jatuh Tempo",
    "jatuh tempo": "Jatuh Tempo",
}

PAYMENT_CATEGORY_SYNONYMS: Mapping[str, str] = {
    "monthly": "Bulanan",
    "bulanan": "Bulanan",
    "semester": "Semester",
    "semesterly": "Semester",
    "registration": "Registrasi",
    "registrasi": "Registrasi",
    "pendaftaran": "Registrasi",
}

DAY_SYNONYMS: Mapping[str, str] = {
    "senin": "Monday",
    "monday": "Monday",
    "mon": "Monday",
    "selasa": "Tuesday",
    "tuesday": "Tuesday",
    "tue": "Tuesday",
    "rabu": "Wednesday",
    "wednesday": "Wednesday",
    "wed": "Wednesday",
    "kamis": "Thursday",
    "thursday": "Thursday",
    "thu": "Thursday",
    "jumat": "Friday",
    "jum'at": "Friday",
    "friday": "Friday",
    "fri": "Friday",
    "sabtu": "Saturday",
    "saturday": "Saturday",
    "sat": "Saturday",
    "minggu": "Sunday",
    "ahad": "Sunday",
    "sunday": "Sunday",
    "sun": "Sunday",
}

# Checked in order, first hit wins: "belum konsisten" must not fall into "konsisten",
# nor "tidak konsisten" into "tidak".
ASSESSMENT_KEYWORDS: Sequence[tuple[tuple[str, ...], str]] = (
    (("inconsistent", "not consistent", "tidak konsisten", "belum"), "Belum Konsisten"),
    (("not observed", "tidak"), "Tidak Teramati"),
    (("consistent", "konsisten"), "Konsisten"),
    (("independent", "mandiri"), "Mandiri"),
    (("assistance", "bantuan", "help"), "Bantuan"),
)


def normalize(value: str | None, synonyms: Mapping[str, str]) -> str | None:
    """Map a free-text value onto its canonical label by exact (case-insensitive) match."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    return synonyms.get(cleaned.lower(), cleaned)


def normalize_gender(value: str | None) -> str | None:
    return normalize(value, GENDER_SYNONYMS)


def normalize_payment_status(value: str | None) -> str | None:
    return normalize(value, PAYMENT_STATUS_SYNONYMS)


def normalize_payment_category(value: str | None) -> str | None:
    return normalize(value, PAYMENT_CATEGORY_SYNONYMS)


def normalize_day(value: str | None) -> str | None:
    """Normalize day names such as "Senin", "hari senin" or "mon" to "Monday"."""
    if value is None:
        return None
    cleaned = value.strip()
    lowered = cleaned.lower()
    if lowered.startswith("hari "):
        cleaned = cleaned[5:].strip()
    return normalize(cleaned, DAY_SYNONYMS)


def normalize_assessment(value: str | None) -> str | None:
    """Map assessment wording (EN or ID) onto the stored label, by keyword containment."""
    if value is None or not value.strip():
        return None
    lowered = value.lower()
    for keywords, label in ASSESSMENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return label
    return value.strip()


def day_index(day: str | None) -> int:
    """Position of a canonical day in the week (Monday first); unknown days sort last."""
    try:
        return DAYS.index(day)  # type: ignore[arg-type]
    except ValueError:
        return len(DAYS)
