import pytest

from apbd.csv_io import parse_csv, to_csv
from apbd.domain import BudgetRecord, SearchFilters
from apbd.errors import StoreError, ValidationError
from apbd.gateway import DataGateway
from apbd.store import MemoryStore


def make_row(tahun, kategori, sub, ket, nilai):
    return {"tahun": tahun, "kategori": kategori, "subkategori": sub, "keterangan": ket, "nilai": nilai}


SEED = [
    make_row(2023, "Pendapatan", "Retribusi Daerah", "Retribusi pasar", 1960000000.0),
    make_row(2022, "Pembelanjaan", "Belanja Operasi", "Belanja pegawai", 845000000000.0),
    make_row(2022, "Pendapatan", "Pajak Daerah", "Pajak Restoran", 6100000000.0),
    make_row(2022, "Pendapatan", "Pajak Daerah", "Pajak hotel", 4250000000.0),
    make_row(2023, "Pembiayaan", "Penerimaan Pembiayaan", "SiLPA", 131400000000.0),
]


def make_gateway(rows=SEED, **store_kwargs):
    store = MemoryStore(rows, **store_kwargs)
    return DataGateway(store), store


@pytest.mark.asyncio
async def test_insert_scenario_converts_types():
    gw, store = make_gateway([])
    res = await gw.insert({"tahun": "2021", "kategori": "Pendapatan", "subkategori": "Pajak Daerah",
                           "keterangan": "Pajak restoran", "nilai": "15000000"})
    assert res.is_right()
    rec = res.get_or_else(None)
    assert isinstance(rec, BudgetRecord)
    assert rec.nilai == 15000000
    assert rec.tahun == 2021 and isinstance(rec.tahun, int)
    assert rec.id is not None
    assert rec.created_at is not None
    assert len(store.rows) == 1


@pytest.mark.asyncio
async def test_insert_invalid_never_reaches_store():
    gw, store = make_gateway([])
    res = await gw.insert(make_row(2016, "X", "a", "b", 1))
    assert res.is_left()
    err = res.get_error()
    assert isinstance(err, ValidationError)
    assert len(err.errors) == 2
    assert store.insert_calls == []


@pytest.mark.asyncio
async def test_fetch_all_sorted():
    gw, _ = make_gateway()
    records = (await gw.fetch_all()).get_or_else(None)
    keys = [(r.tahun, r.kategori, r.subkategori) for r in records]
    assert keys == sorted(keys)
    assert len(records) == 5


@pytest.mark.asyncio
async def test_fetch_by_category():
    gw, _ = make_gateway()
    records = (await gw.fetch_by_category("Pendapatan")).get_or_else(None)
    assert {r.kategori for r in records} == {"Pendapatan"}
    assert [(r.tahun, r.subkategori) for r in records] == [
        (2022, "Pajak Daerah"), (2022, "Pajak Daerah"), (2023, "Retribusi Daerah"),
    ]


@pytest.mark.asyncio
async def test_search_filters_are_conjunctive_and_case_insensitive():
    gw, _ = make_gateway()
    res = await gw.search(SearchFilters(kategori="Pendapatan", keterangan_contains="PAJAK"))
    assert sorted(r.keterangan for r in res.get_or_else([])) == ["Pajak Restoran", "Pajak hotel"]

    res = await gw.search(SearchFilters(subkategori_contains="daerah", tahun=2022, min_nilai=5e9))
    assert [r.keterangan for r in res.get_or_else([])] == ["Pajak Restoran"]

    res = await gw.search(SearchFilters(max_nilai=2e9))
    assert [r.keterangan for r in res.get_or_else([])] == ["Retribusi pasar"]

    res = await gw.search(SearchFilters())
    assert len(res.get_or_else([])) == 5


@pytest.mark.asyncio
async def test_update_replaces_fields():
    gw, store = make_gateway()
    res = await gw.update(1, make_row("2024", "Pembiayaan", "Baru", "Diganti", "10"))
    rec = res.get_or_else(None)
    assert (rec.tahun, rec.kategori, rec.subkategori, rec.keterangan, rec.nilai) == (2024, "Pembiayaan", "Baru", "Diganti", 10.0)
    assert rec.updated_at is not None

    missing = await gw.update(999, make_row(2024, "Pembiayaan", "a", "b", 1))
    assert isinstance(missing.get_error(), StoreError)

    invalid = await gw.update(1, make_row(2024, "Pembiayaan", "", "b", -1))
    assert isinstance(invalid.get_error(), ValidationError)


@pytest.mark.asyncio
async def test_delete_and_delete_many():
    gw, store = make_gateway()
    assert (await gw.delete(1)).is_right()
    assert (await gw.delete_many([2, 3])).is_right()
    assert (await gw.delete_many([])).is_right()
    assert sorted(r["id"] for r in store.rows) == [4, 5]


@pytest.mark.asyncio
async def test_import_batch_rejects_whole_batch_on_one_invalid_row():
    gw, store = make_gateway([])
    rows = [make_row(2020, "Pendapatan", "Pajak", f"baris {i}", i * 10) for i in range(10)]
    rows.insert(4, make_row(2030, "Pendapatan", "Pajak", "salah", 1))
    res = await gw.import_batch(rows)
    assert res.is_left()
    err = res.get_error()
    assert err.errors == ["Baris 6: Tahun harus antara 2017-2024"]
    assert store.rows == []
    assert store.insert_calls == []


@pytest.mark.asyncio
async def test_import_csv_reports_source_line():
    gw, store = make_gateway([])
    text = (
        "No,Tahun,Kategori,Subkategori,Keterangan,Nilai\n"
        '1,2021,"Pendapatan","Pajak","ok",10\n'
        "\n"
        '2,2021,"Pendapatan","Pajak","",10\n'
    )
    res = await gw.import_csv(text)
    assert res.get_error().errors == ["Baris 4: Keterangan tidak boleh kosong"]
    assert store.rows == []


@pytest.mark.asyncio
async def test_import_batch_inserts_in_chunks():
    gw, store = make_gateway([])
    rows = [make_row(2019, "Pembelanjaan", "Belanja", f"item {i}", i) for i in range(250)]
    res = await gw.import_batch(rows)
    assert res.get_or_else(None) == {"count": 250}
    assert store.insert_calls == [100, 100, 50]
    assert len(store.rows) == 250


@pytest.mark.asyncio
async def test_import_failure_keeps_earlier_chunks():
    gw, store = make_gateway([], fail_on_insert_call=2)
    rows = [make_row(2019, "Pembelanjaan", "Belanja", f"item {i}", i) for i in range(250)]
    res = await gw.import_batch(rows)
    err = res.get_error()
    assert isinstance(err, StoreError)
    assert err.committed == 100
    assert len(store.rows) == 100


@pytest.mark.asyncio
async def test_export_then_import_round_trip():
    source, _ = make_gateway()
    records = (await source.fetch_all()).get_or_else(None)
    target, _ = make_gateway([])
    res = await target.import_csv(to_csv(records))
    assert res.get_or_else(None) == {"count": len(records)}

    copied = (await target.fetch_all()).get_or_else(None)
    fields = lambda r: (r.tahun, r.kategori, r.subkategori, r.keterangan, r.nilai)
    assert [fields(r) for r in copied] == [fields(r) for r in records]


@pytest.mark.asyncio
async def test_full_export_round_trip_ignores_ids():
    source, _ = make_gateway()
    records = (await source.fetch_all()).get_or_else(None)
    rows = parse_csv(to_csv(records, include_id=True))
    assert len(rows) == len(records)
    assert rows[0]["tahun"] == str(records[0].tahun)


@pytest.mark.asyncio
async def test_store_failures_become_left():
    gw, _ = make_gateway(offline=True)
    assert isinstance((await gw.fetch_all()).get_error(), StoreError)
    assert isinstance((await gw.delete(1)).get_error(), StoreError)
    assert (await gw.test_connection()).is_left()


@pytest.mark.asyncio
async def test_statistics_and_connection():
    gw, _ = make_gateway()
    stats = (await gw.statistics()).get_or_else(None)
    assert stats["total_entries"] == 5
    assert stats["year_range"] == {"min": 2022, "max": 2023}
    assert (await gw.test_connection()).get_or_else(False) is True
