from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

TABLE = "apbd_data"

KATEGORI = ("Pendapatan", "Pembelanjaan", "Pembiayaan")

TAHUN_MIN = 2017
TAHUN_MAX = 2024

WRITABLE_FIELDS = ("tahun", "kategori", "subkategori", "keterangan", "nilai")


@dataclass(frozen=True)
class BudgetRecord:
    id: object               # assigned by the store
    tahun: int
    kategori: str
    subkategori: str
    keterangan: str
    nilai: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "BudgetRecord":
        return cls(
            id=row.get("id"),
            tahun=int(row["tahun"]),
            kategori=row["kategori"],
            subkategori=row["subkategori"],
            keterangan=row["keterangan"],
            nilai=float(row["nilai"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_row(self) -> dict:
        return {k: v for k, v in asdict(self).items() if k in WRITABLE_FIELDS}


@dataclass(frozen=True)
class SearchFilters:
    kategori: Optional[str] = None
    tahun: Optional[int] = None
    subkategori_contains: Optional[str] = None
    keterangan_contains: Optional[str] = None
    min_nilai: Optional[float] = None
    max_nilai: Optional[float] = None


@dataclass(frozen=True)
class Notification:
    level: str     # success | error | warning | info
    message: str
    ts: str


class Route(Enum):
    HOME = "home"
    PENDAPATAN = "pendapatan"
    PEMBELANJAAN = "pembelanjaan"
    PEMBIAYAAN = "pembiayaan"
    ADMIN = "admin"

    @property
    def kategori(self) -> Optional[str]:
        """Category shown by a category page, None for home and admin."""
        for k in KATEGORI:
            if k.lower() == self.value:
                return k
        return None

    @classmethod
    def parse(cls, name: Optional[str]) -> "Route":
        name = (name or "").strip().lower()
        for route in cls:
            if route.value == name:
                return route
        return cls.HOME
