"""Async access to the budget table.

Every operation returns an ``Either``: ``Right`` with the result, or ``Left``
with a ``ValidationError``/``StoreError``. Nothing here raises for store or
validation failures; the page decides how to report them.

Validation runs before every write. The store has no constraints of its own,
so rows written around this gateway are not checked.
"""

from typing import Any, Dict, List, Sequence

from apbd.csv_io import parse_csv
from apbd.domain import BudgetRecord, SearchFilters
from apbd.errors import ApbdError, StoreError, ValidationError
from apbd.functional import Either, Left, Right
from apbd.logs import get_logger
from apbd.store import RecordStore, now_iso
from apbd.transforms import data_statistics
from apbd.validation import normalize, validate

log = get_logger("gateway")

ORDER_ALL = ("tahun", "kategori", "subkategori")
ORDER_CATEGORY = ("tahun", "subkategori")

IMPORT_CHUNK_SIZE = 100


def _records(rows: List[dict]) -> List[BudgetRecord]:
    return [BudgetRecord.from_row(r) for r in rows]


class DataGateway:

    def __init__(self, store: RecordStore, chunk_size: int = IMPORT_CHUNK_SIZE):
        self.store = store
        self.chunk_size = chunk_size

    async def _select(self, filters: SearchFilters, order: Sequence[str], what: str) -> Either[ApbdError, List[BudgetRecord]]:
        try:
            rows = await self.store.select(filters, order)
        except StoreError as exc:
            log.error("Error fetching %s: %s", what, exc)
            return Left(exc)
        log.info("Fetched %d records (%s)", len(rows), what)
        return Right(_records(rows))

    async def fetch_all(self) -> Either[ApbdError, List[BudgetRecord]]:
        return await self._select(SearchFilters(), ORDER_ALL, "all")

    async def fetch_by_category(self, kategori: str) -> Either[ApbdError, List[BudgetRecord]]:
        return await self._select(SearchFilters(kategori=kategori), ORDER_CATEGORY, kategori)

    async def search(self, filters: SearchFilters) -> Either[ApbdError, List[BudgetRecord]]:
        return await self._select(filters, ORDER_ALL, "search")

    async def insert(self, candidate: Any) -> Either[ApbdError, BudgetRecord]:
        check = validate(candidate)
        if not check.is_valid:
            log.warning("Insert rejected: %s", check.message)
            return Left(ValidationError(check.errors))

        row = normalize(candidate)
        row["created_at"] = now_iso()
        try:
            stored = await self.store.insert([row])
        except StoreError as exc:
            log.error("Error inserting data: %s", exc)
            return Left(exc)
        if not stored:
            return Left(StoreError("Data tidak dikembalikan oleh database"))
        log.info("Inserted record %s", stored[0].get("id"))
        return Right(BudgetRecord.from_row(stored[0]))

    async def update(self, record_id: Any, candidate: Any) -> Either[ApbdError, BudgetRecord]:
        check = validate(candidate)
        if not check.is_valid:
            log.warning("Update of %s rejected: %s", record_id, check.message)
            return Left(ValidationError(check.errors))

        row = normalize(candidate)
        row["updated_at"] = now_iso()
        try:
            stored = await self.store.update(record_id, row)
        except StoreError as exc:
            log.error("Error updating %s: %s", record_id, exc)
            return Left(exc)
        log.info("Updated record %s", record_id)
        return Right(BudgetRecord.from_row(stored))

    async def delete(self, record_id: Any) -> Either[ApbdError, None]:
        return await self.delete_many([record_id])

    async def delete_many(self, ids: Sequence[Any]) -> Either[ApbdError, None]:
        ids = list(ids)
        if not ids:
            return Right(None)
        try:
            await self.store.delete(ids)
        except StoreError as exc:
            log.error("Error deleting %s: %s", ids, exc)
            return Left(exc)
        log.info("Deleted %d record(s)", len(ids))
        return Right(None)

    async def import_batch(self, rows: Sequence[Any]) -> Either[ApbdError, Dict[str, int]]:
        """Validate every row, then insert in sequential chunks.

        One invalid row rejects the whole batch before anything is written.
        A store failure mid-way keeps the chunks already inserted; the error
        carries how many rows were committed.
        """
        valid: List[dict] = []
        errors: List[str] = []
        for index, candidate in enumerate(rows):
            check = validate(candidate)
            if check.is_valid:
                row = normalize(candidate)
                row["created_at"] = now_iso()
                valid.append(row)
            else:
                line = candidate.get("_line", index + 2) if isinstance(candidate, dict) else index + 2
                errors.append(f"Baris {line}: {check.message}")

        if errors:
            log.warning("Import rejected, %d invalid row(s)", len(errors))
            return Left(ValidationError(errors))

        inserted = 0
        for start in range(0, len(valid), self.chunk_size):
            chunk = valid[start:start + self.chunk_size]
            try:
                await self.store.insert(chunk)
            except StoreError as exc:
                log.error("Import stopped after %d rows: %s", inserted, exc)
                return Left(StoreError(exc.message, committed=inserted))
            inserted += len(chunk)

        log.info("Imported %d records", inserted)
        return Right({"count": inserted})

    async def import_csv(self, text: str) -> Either[ApbdError, Dict[str, int]]:
        return await self.import_batch(parse_csv(text))

    async def statistics(self) -> Either[ApbdError, Dict[str, Any]]:
        return (await self.fetch_all()).map(data_statistics)

    async def test_connection(self) -> Either[ApbdError, bool]:
        try:
            await self.store.ping()
        except StoreError as exc:
            log.error("Database connection failed: %s", exc)
            return Left(exc)
        log.info("Database connection successful")
        return Right(True)
