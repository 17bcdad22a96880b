"""Pure aggregation over budget rows.

Every function accepts ``BudgetRecord`` objects or plain dict rows as they come
back from the store, so the page can aggregate either form.
"""

import math
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

from apbd.domain import KATEGORI


def field_of(record: Any, field: str) -> Any:
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def to_number(value: Any) -> float:
    """Parse a nilai value; anything unparseable or non-finite counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _zero_totals() -> Dict[str, float]:
    return {k: 0 for k in KATEGORI}


def group_by(records: Iterable[Any], field: str) -> Dict[Any, List[Any]]:
    # dicts keep insertion order: first-seen key first, no sorting
    groups: Dict[Any, List[Any]] = {}
    for r in records:
        groups.setdefault(field_of(r, field), []).append(r)
    return groups


def total_nilai(records: Iterable[Any]) -> float:
    return sum(to_number(field_of(r, "nilai")) for r in records)


def totals_by_category(records: Iterable[Any]) -> Dict[str, float]:
    totals = _zero_totals()
    for r in records:
        kategori = field_of(r, "kategori")
        if kategori in totals:
            totals[kategori] += to_number(field_of(r, "nilai"))
    return totals


def totals_by_year(records: Iterable[Any]) -> Dict[Any, Dict[str, float]]:
    yearly: Dict[Any, Dict[str, float]] = {}
    for r in records:
        bucket = yearly.setdefault(field_of(r, "tahun"), _zero_totals())
        kategori = field_of(r, "kategori")
        if kategori in bucket:
            bucket[kategori] += to_number(field_of(r, "nilai"))
    return yearly


def category_summary(records: Sequence[Any]) -> Dict[str, Any]:
    return {
        "total": total_nilai(records),
        "subcategories": len({field_of(r, "subkategori") for r in records}),
        "entries": len(records),
    }


def admin_statistics(records: Sequence[Any]) -> Dict[str, int]:
    stats = {"total": len(records)}
    for k in KATEGORI:
        stats[k.lower()] = sum(1 for r in records if field_of(r, "kategori") == k)
    return stats


def data_statistics(records: Sequence[Any]) -> Dict[str, Any]:
    """Overall counts, year range and per-category breakdown."""
    years = [field_of(r, "tahun") for r in records]
    by_category: Dict[str, Dict[str, Any]] = {}
    for kategori, rows in group_by(records, "kategori").items():
        by_category[kategori] = {
            "total": total_nilai(rows),
            "count": len(rows),
            "subcategories": list(group_by(rows, "subkategori")),
        }
    return {
        "total_entries": len(records),
        "categories": len(by_category),
        "subcategories": len({field_of(r, "subkategori") for r in records}),
        "year_range": {"min": min(years), "max": max(years)} if years else {"min": None, "max": None},
        "total_value": total_nilai(records),
        "by_category": by_category,
    }


def subcategory_series(records: Sequence[Any]) -> Dict[str, list]:
    """Bar series of totals per subcategory, in first-seen order."""
    groups = group_by(records, "subkategori")
    return {
        "labels": list(groups),
        "values": [total_nilai(rows) for rows in groups.values()],
    }


def year_series(records: Sequence[Any]) -> Dict[str, list]:
    """Bar series of totals per year, years ascending."""
    groups = group_by(records, "tahun")
    years = sorted(groups)
    return {
        "labels": years,
        "values": [total_nilai(groups[y]) for y in years],
    }


def _grouped_series(records: Sequence[Any], series_field: str) -> Dict[str, list]:
    years = sorted({field_of(r, "tahun") for r in records})
    index = {y: i for i, y in enumerate(years)}
    datasets = []
    for label, rows in group_by(records, series_field).items():
        values = np.zeros(len(years))
        for r in rows:
            values[index[field_of(r, "tahun")]] += to_number(field_of(r, "nilai"))
        datasets.append({"label": label, "values": values.tolist()})
    return {"labels": years, "datasets": datasets}


def comparison_series(records: Sequence[Any]) -> Dict[str, list]:
    """Per-year totals for every subcategory, one dataset each."""
    return _grouped_series(records, "subkategori")


def category_year_series(records: Sequence[Any]) -> Dict[str, list]:
    """Per-year totals for each of the three categories (home page)."""
    yearly = totals_by_year(records)
    years = sorted(yearly)
    return {
        "labels": years,
        "datasets": [
            {"label": k, "values": [yearly[y][k] for y in years]} for k in KATEGORI
        ],
    }
