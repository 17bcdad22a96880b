import pytest

from apbd.validation import normalize, validate, validate_field


def make_candidate(**overrides):
    c = {"tahun": 2020, "kategori": "Pendapatan", "subkategori": "x", "keterangan": "y", "nilai": 5}
    c.update(overrides)
    return c


def test_valid_candidate():
    res = validate(make_candidate())
    assert res.is_valid
    assert res.errors == []
    assert res.message == ""


def test_year_out_of_range():
    res = validate(make_candidate(tahun=2016))
    assert not res.is_valid
    assert res.errors == ["Tahun harus antara 2017-2024"]


def test_unknown_category():
    res = validate(make_candidate(kategori="X"))
    assert res.errors == ["Kategori harus salah satu dari: Pendapatan, Pembelanjaan, Pembiayaan"]


def test_year_and_category_reported_together():
    res = validate(make_candidate(tahun=2016, kategori="X"))
    assert len(res.errors) == 2
    assert res.errors[0].startswith("Tahun")
    assert res.errors[1].startswith("Kategori")
    assert res.message == ", ".join(res.errors)


def test_every_rule_collected_in_order():
    res = validate({"tahun": "abc", "kategori": " ", "subkategori": "  ", "keterangan": None, "nilai": "x"})
    assert res.errors == [
        "Tahun harus berupa angka",
        "Kategori tidak boleh kosong",
        "Subkategori tidak boleh kosong",
        "Keterangan tidak boleh kosong",
        "Nilai harus berupa angka",
    ]


def test_missing_fields_are_errors():
    assert len(validate({}).errors) == 5


@pytest.mark.parametrize("tahun", [2017, 2024, "2021", " 2019 ", 2018.0])
def test_year_accepted_forms(tahun):
    assert validate(make_candidate(tahun=tahun)).is_valid


@pytest.mark.parametrize(
    "tahun", [2025, "2021.5", "2021abc", 2021.5, True, ""]
)
def test_year_rejected_forms(tahun):
    assert not validate(make_candidate(tahun=tahun)).is_valid


def test_nilai_rules():
    assert validate(make_candidate(nilai=0)).is_valid
    assert validate(make_candidate(nilai="15000000")).is_valid
    assert validate(make_candidate(nilai=-1)).errors == ["Nilai tidak boleh negatif"]
    assert validate(make_candidate(nilai="inf")).errors == ["Nilai harus berupa angka"]


def test_normalize_converts_types_and_trims():
    row = normalize({"tahun": "2021", "kategori": " Pendapatan ", "subkategori": "Pajak Daerah ",
                     "keterangan": " Pajak restoran", "nilai": "15000000"})
    assert row == {"tahun": 2021, "kategori": "Pendapatan", "subkategori": "Pajak Daerah",
                   "keterangan": "Pajak restoran", "nilai": 15000000.0}
    assert isinstance(row["tahun"], int)


def test_validate_field():
    assert validate_field("tahun", 2030) == "Tahun harus antara 2017-2024"
    assert validate_field("subkategori", "ok") is None
    with pytest.raises(KeyError):
        validate_field("unknown", 1)
