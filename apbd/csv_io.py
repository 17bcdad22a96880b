"""CSV export and import in the layout the finance office exchanges.

Export::

    Tahun,Kategori,Subkategori,Keterangan,Nilai
    2021,"Pendapatan","Pajak Daerah","Pajak restoran",15000000

The full export adds a leading ``ID`` column. Import skips the header line and
blank lines. A leading column (ID or row number) is ignored unless the header
starts directly with ``Tahun``.
"""

import csv
import io
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from apbd.domain import Route
from apbd.transforms import field_of

HEADER = ["Tahun", "Kategori", "Subkategori", "Keterangan", "Nilai"]
FIELDS = ["tahun", "kategori", "subkategori", "keterangan", "nilai"]

FULL_EXPORT_PREFIX = "APBD_Blora"

EXPORT_PREFIX = {
    Route.PENDAPATAN: "APBD_Pendapatan_Blora",
    Route.PEMBELANJAAN: "APBD_Pembelanjaan_Blora",
    Route.PEMBIAYAAN: "APBD_Pembiayaan_Blora",
    Route.HOME: "APBD_Lengkap_Blora",
    Route.ADMIN: "APBD_Lengkap_Blora",
}


def _plain_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_csv(records: Iterable[Any], include_id: bool = False) -> str:
    buf = io.StringIO()
    # QUOTE_NONNUMERIC quotes the text columns and leaves numbers bare
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    buf.write(",".join(["ID"] + HEADER if include_id else HEADER) + "\n")
    for r in records:
        row = [_plain_number(field_of(r, f)) for f in FIELDS]
        if include_id:
            row.insert(0, field_of(r, "id"))
        writer.writerow(row)
    return buf.getvalue()


def _clean(cell: str) -> str:
    return cell.lstrip("\ufeff").strip()


def parse_csv(text: str) -> List[Dict[str, Any]]:
    """Candidate rows with their 1-based source line under ``_line``."""
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True)
    header = next(reader, None)
    if header is None:
        return []
    offset = 0 if header and _clean(header[0]).lower() == "tahun" else 1

    rows: List[Dict[str, Any]] = []
    for cells in reader:
        values = [_clean(c) for c in cells]
        if not any(values):
            continue
        values = values[offset:offset + len(FIELDS)]
        values += [None] * (len(FIELDS) - len(values))
        row: Dict[str, Any] = dict(zip(FIELDS, values))
        row["_line"] = reader.line_num
        rows.append(row)
    return rows


def export_filename(prefix: str, year: Optional[int] = None) -> str:
    return f"{prefix}_{year or date.today().year}.csv"


def load_seed(path: str) -> List[Dict[str, Any]]:
    """Rows from a CSV file on disk, as parsed candidates (unvalidated)."""
    with open(path, "r", encoding="utf-8-sig") as f:
        return parse_csv(f.read())
