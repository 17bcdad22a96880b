from typing import Any, Callable, List, Optional

from apbd.domain import SearchFilters
from apbd.transforms import field_of, to_number

Predicate = Callable[[Any], bool]


def by_kategori(kategori: str) -> Predicate:
    def _filter(r) -> bool:
        return field_of(r, "kategori") == kategori

    return _filter


def by_tahun(tahun: int) -> Predicate:
    def _filter(r) -> bool:
        return str(field_of(r, "tahun")) == str(tahun)

    return _filter


def by_text_contains(field: str, needle: str) -> Predicate:
    needle = needle.casefold()

    def _filter(r) -> bool:
        return needle in str(field_of(r, field) or "").casefold()

    return _filter


def by_nilai_range(min: Optional[float] = None, max: Optional[float] = None) -> Predicate:
    def _filter(r) -> bool:
        nilai = to_number(field_of(r, "nilai"))
        if min is not None and nilai < min:
            return False
        if max is not None and nilai > max:
            return False
        return True

    return _filter


def predicates(filters: SearchFilters) -> List[Predicate]:
    """Only the filters that are set; empty strings count as unset."""
    preds: List[Predicate] = []
    if filters.kategori:
        preds.append(by_kategori(filters.kategori))
    if filters.tahun is not None:
        preds.append(by_tahun(filters.tahun))
    if filters.subkategori_contains:
        preds.append(by_text_contains("subkategori", filters.subkategori_contains))
    if filters.keterangan_contains:
        preds.append(by_text_contains("keterangan", filters.keterangan_contains))
    if filters.min_nilai is not None or filters.max_nilai is not None:
        preds.append(by_nilai_range(filters.min_nilai, filters.max_nilai))
    return preds


def matches(filters: SearchFilters) -> Predicate:
    preds = predicates(filters)

    def _filter(r) -> bool:
        return all(p(r) for p in preds)

    return _filter
