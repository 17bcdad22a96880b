"""Record store backends for the ``apbd_data`` table.

``SupabaseStore`` talks to the hosted backend; ``MemoryStore`` keeps rows in
process and serves the tests and offline demo mode. Both raise ``StoreError``
for every failure so the gateway has a single thing to catch.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from apbd.domain import TABLE, SearchFilters
from apbd.errors import StoreError
from apbd.filters import matches
from apbd.logs import get_logger

log = get_logger("store")

NO_FILTERS = SearchFilters()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore(ABC):

    @abstractmethod
    async def select(self, filters: SearchFilters = NO_FILTERS, order: Sequence[str] = ()) -> List[dict]:
        ...

    @abstractmethod
    async def insert(self, rows: List[dict]) -> List[dict]:
        ...

    @abstractmethod
    async def update(self, record_id: Any, row: dict) -> dict:
        ...

    @abstractmethod
    async def delete(self, ids: Sequence[Any]) -> None:
        ...

    @abstractmethod
    async def ping(self) -> None:
        ...


class SupabaseStore(RecordStore):
    def __init__(self, url: str, key: str, table: str = TABLE, client: Optional[AsyncClient] = None):
        self.url = url
        self.key = key
        self.table = table
        self._client = client

    async def client(self) -> AsyncClient:
        if self._client is None:
            try:
                self._client = await acreate_client(self.url, self.key)
            except Exception as exc:
                raise StoreError(f"Gagal menginisialisasi koneksi database: {exc}") from exc
            log.info("Supabase client ready for %s", self.url)
        return self._client

    async def _execute(self, query) -> List[dict]:
        try:
            response = await query.execute()
        except APIError as exc:
            raise StoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Koneksi ke database gagal: {exc}") from exc
        return list(response.data or [])

    async def select(self, filters: SearchFilters = NO_FILTERS, order: Sequence[str] = ()) -> List[dict]:
        query = (await self.client()).table(self.table).select("*")
        if filters.kategori:
            query = query.eq("kategori", filters.kategori)
        if filters.tahun is not None:
            query = query.eq("tahun", filters.tahun)
        if filters.subkategori_contains:
            query = query.ilike("subkategori", f"%{filters.subkategori_contains}%")
        if filters.keterangan_contains:
            query = query.ilike("keterangan", f"%{filters.keterangan_contains}%")
        if filters.min_nilai is not None:
            query = query.gte("nilai", filters.min_nilai)
        if filters.max_nilai is not None:
            query = query.lte("nilai", filters.max_nilai)
        for column in order:
            query = query.order(column, desc=False)
        return await self._execute(query)

    async def insert(self, rows: List[dict]) -> List[dict]:
        query = (await self.client()).table(self.table).insert(rows)
        return await self._execute(query)

    async def update(self, record_id: Any, row: dict) -> dict:
        query = (await self.client()).table(self.table).update(row).eq("id", record_id)
        data = await self._execute(query)
        if not data:
            raise StoreError(f"Data dengan ID {record_id} tidak ditemukan")
        return data[0]

    async def delete(self, ids: Sequence[Any]) -> None:
        table = (await self.client()).table(self.table)
        if len(ids) == 1:
            query = table.delete().eq("id", ids[0])
        else:
            query = table.delete().in_("id", list(ids))
        await self._execute(query)

    async def ping(self) -> None:
        query = (await self.client()).table(self.table).select("id").limit(1)
        await self._execute(query)


class MemoryStore(RecordStore):
    """In-process table with the same contract as the hosted one.

    ``fail_on_insert_call`` makes the n-th insert call (1-based) raise,
    ``offline`` makes every call raise.
    """

    def __init__(self, rows: Sequence[dict] = (), fail_on_insert_call: Optional[int] = None,
                 offline: bool = False):
        self._rows: Dict[int, dict] = {}
        self._next_id = 1
        self.fail_on_insert_call = fail_on_insert_call
        self.offline = offline
        self.insert_calls: List[int] = []
        for row in rows:
            self._add(dict(row))

    def _add(self, row: dict) -> dict:
        row = dict(row)
        row.setdefault("id", self._next_id)
        row.setdefault("created_at", now_iso())
        row.setdefault("updated_at", None)
        if isinstance(row["id"], int):
            self._next_id = max(self._next_id, row["id"] + 1)
        self._rows[row["id"]] = row
        return dict(row)

    async def _io(self) -> None:
        await asyncio.sleep(0)
        if self.offline:
            raise StoreError("Koneksi ke database gagal: store offline")

    @property
    def rows(self) -> List[dict]:
        return [dict(r) for r in self._rows.values()]

    async def select(self, filters: SearchFilters = NO_FILTERS, order: Sequence[str] = ()) -> List[dict]:
        await self._io()
        found = [dict(r) for r in self._rows.values() if matches(filters)(r)]
        for column in reversed(order):
            found.sort(key=lambda r: r.get(column))
        return found

    async def insert(self, rows: List[dict]) -> List[dict]:
        await self._io()
        self.insert_calls.append(len(rows))
        if self.fail_on_insert_call == len(self.insert_calls):
            raise StoreError("Gagal menyimpan data: insert ditolak")
        return [self._add(r) for r in rows]

    async def update(self, record_id: Any, row: dict) -> dict:
        await self._io()
        current = self._rows.get(record_id)
        if current is None:
            raise StoreError(f"Data dengan ID {record_id} tidak ditemukan")
        current.update(row)
        return dict(current)

    async def delete(self, ids: Sequence[Any]) -> None:
        await self._io()
        for record_id in ids:
            self._rows.pop(record_id, None)

    async def ping(self) -> None:
        await self._io()
