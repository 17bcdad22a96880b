import math
import re
from typing import Any, List, NamedTuple, Optional

from apbd.domain import KATEGORI, TAHUN_MAX, TAHUN_MIN
from apbd.transforms import field_of

_INT_RE = re.compile(r"^[+-]?\d+$")


class ValidationResult(NamedTuple):
    is_valid: bool
    errors: List[str]
    message: str


def parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    text = str(value).strip()
    return int(text) if _INT_RE.match(text) else None


def parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _check_tahun(value) -> List[str]:
    tahun = parse_int(value)
    if tahun is None:
        return ["Tahun harus berupa angka"]
    if tahun < TAHUN_MIN or tahun > TAHUN_MAX:
        return [f"Tahun harus antara {TAHUN_MIN}-{TAHUN_MAX}"]
    return []


def _check_kategori(value) -> List[str]:
    kategori = _text(value)
    if not kategori:
        return ["Kategori tidak boleh kosong"]
    if kategori not in KATEGORI:
        return ["Kategori harus salah satu dari: " + ", ".join(KATEGORI)]
    return []


def _check_required(label: str):
    def _check(value) -> List[str]:
        return [] if _text(value) else [f"{label} tidak boleh kosong"]
    return _check


def _check_nilai(value) -> List[str]:
    nilai = parse_number(value)
    if nilai is None:
        return ["Nilai harus berupa angka"]
    if nilai < 0:
        return ["Nilai tidak boleh negatif"]
    return []


# Order matters: messages are reported in this order.
CHECKS = (
    ("tahun", _check_tahun),
    ("kategori", _check_kategori),
    ("subkategori", _check_required("Subkategori")),
    ("keterangan", _check_required("Keterangan")),
    ("nilai", _check_nilai),
)


def validate(candidate: Any) -> ValidationResult:
    """Check a candidate row against every field rule.

    All violations are collected; nothing short-circuits.
    """
    errors: List[str] = []
    for field, check in CHECKS:
        errors.extend(check(field_of(candidate, field)))
    return ValidationResult(is_valid=not errors, errors=errors, message=", ".join(errors))


def validate_field(field: str, value: Any) -> Optional[str]:
    """First error for a single form field, or None when it is fine."""
    for name, check in CHECKS:
        if name == field:
            errors = check(value)
            return errors[0] if errors else None
    raise KeyError(field)


def normalize(candidate: Any) -> dict:
    """Writable row for a candidate that already passed ``validate``."""
    return {
        "tahun": parse_int(field_of(candidate, "tahun")),
        "kategori": _text(field_of(candidate, "kategori")),
        "subkategori": _text(field_of(candidate, "subkategori")),
        "keterangan": _text(field_of(candidate, "keterangan")),
        "nilai": parse_number(field_of(candidate, "nilai")),
    }
