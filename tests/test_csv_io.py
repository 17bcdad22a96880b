from apbd.csv_io import export_filename, parse_csv, to_csv
from apbd.domain import BudgetRecord


def make_rec(id, ket, nilai=15000000.0):
    return BudgetRecord(id=id, tahun=2021, kategori="Pendapatan", subkategori="Pajak Daerah",
                        keterangan=ket, nilai=nilai)


def test_to_csv_page_export():
    text = to_csv([make_rec(7, "Pajak restoran")])
    assert text == (
        "Tahun,Kategori,Subkategori,Keterangan,Nilai\n"
        '2021,"Pendapatan","Pajak Daerah","Pajak restoran",15000000\n'
    )


def test_to_csv_full_export_has_id_column():
    lines = to_csv([make_rec(7, "Pajak hotel", 1250.5)], include_id=True).splitlines()
    assert lines[0] == "ID,Tahun,Kategori,Subkategori,Keterangan,Nilai"
    assert lines[1] == '7,2021,"Pendapatan","Pajak Daerah","Pajak hotel",1250.5'


def test_parse_csv_skips_header_blank_lines_and_leading_column():
    text = (
        "No,Tahun,Kategori,Subkategori,Keterangan,Nilai\n"
        '1,2021,"Pendapatan","Pajak Daerah","Pajak hotel",100\n'
        "\n"
        '2, 2022 ,"Pembiayaan","Penerimaan","SiLPA", 50 \n'
    )
    rows = parse_csv(text)
    assert len(rows) == 2
    assert rows[0] == {"tahun": "2021", "kategori": "Pendapatan", "subkategori": "Pajak Daerah",
                       "keterangan": "Pajak hotel", "nilai": "100", "_line": 2}
    assert rows[1]["tahun"] == "2022"
    assert rows[1]["nilai"] == "50"
    assert rows[1]["_line"] == 4


def test_parse_csv_short_row_fills_missing_fields():
    rows = parse_csv("ID,Tahun,Kategori\n1,2021\n")
    assert rows[0]["tahun"] == "2021"
    assert rows[0]["nilai"] is None


def test_parse_csv_empty_text():
    assert parse_csv("") == []
    assert parse_csv("ID,Tahun,Kategori,Subkategori,Keterangan,Nilai\n") == []


def test_page_export_parses_back():
    records = [make_rec(1, 'Belanja jalan, irigasi dan "jaringan"', 2.5), make_rec(2, "Pajak hotel")]
    rows = parse_csv(to_csv(records))
    assert [r["keterangan"] for r in rows] == ['Belanja jalan, irigasi dan "jaringan"', "Pajak hotel"]
    assert [r["nilai"] for r in rows] == ["2.5", "15000000"]


def test_export_filename():
    assert export_filename("APBD_Pendapatan_Blora", 2024) == "APBD_Pendapatan_Blora_2024.csv"
    assert export_filename("APBD_Blora").startswith("APBD_Blora_20")
