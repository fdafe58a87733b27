"""
Catalog and line parser tests: attribute extraction, drop paths, price capture.
"""
import pytest

from matcher import (
    NETWORK_4G, NETWORK_5G, Brand, Color,
    detect_brand, extract_price_digits, extract_storage_ram,
    parse_catalog, parse_line, split_lines,
)

CATALOG = "\n".join([
    "Xiaomi Redmi 14C 128GB 4GB Preto 4G\t#06P",
    "Xiaomi Redmi Note 13 Pro 5G 256GB 8GB Roxo\t#13R",
    "Realme C61 256GB 8GB Gold\t#61G",
])


def test_parse_catalog_scenario_entry():
    entry = parse_catalog(CATALOG)[0]
    assert entry.sku == "#06P"
    assert entry.name == "Xiaomi Redmi 14C 128GB 4GB Preto 4G"
    assert entry.brand is Brand.XIAOMI
    assert entry.model_base == "redmi 14c"
    assert entry.storage_gb == 128
    assert entry.ram_gb == 4
    assert entry.color is Color.PRETO
    assert entry.network == NETWORK_4G


def test_parse_catalog_network_and_color_synonyms():
    entries = parse_catalog(CATALOG)
    assert entries[1].network == NETWORK_5G
    assert entries[1].model_base == "redmi note 13 pro"
    assert entries[1].color is Color.ROXO
    assert entries[2].brand is Brand.REALME
    assert entries[2].color is Color.DOURADO


def test_parse_catalog_skips_malformed_rows_silently():
    text = "\n".join([
        "",
        "Xiaomi Redmi 14C 128GB 4GB Preto 4G without tab",
        "Apple iPhone 13 128GB Preto\t#A13",
        "\t#NONAME",
        "Samsung Galaxy A15 128GB 4GB Azul\t",
        "   ",
        "Samsung Galaxy A15 128GB 4GB Azul 4G\t#A15",
    ])
    entries = parse_catalog(text)
    assert [e.sku for e in entries] == ["#A15"]


def test_parse_catalog_keeps_order_and_duplicates():
    text = "Samsung Galaxy A15 128GB 4GB Azul\t#B\r\nSamsung Galaxy A15 128GB 4GB Azul\t#A\n"
    assert [e.sku for e in parse_catalog(text)] == ["#B", "#A"]


def test_parse_catalog_without_color_or_ram():
    entry = parse_catalog("Motorola Moto G04 64GB\t#G04")[0]
    assert entry.color is None
    assert entry.storage_gb == 64
    assert entry.ram_gb == 0
    assert entry.model_base == "moto g04"


@pytest.mark.parametrize("text, expected", [
    ("Redmi 14C 128GB 4GB", (128, 4)),
    ("Galaxy A15 128GB", (128, 0)),
    ("Galaxy A15", (0, 0)),
    ("Moto G84 256 GB 8 gb", (256, 8)),
    # first token is storage; RAM is the other value
    ("Realme 4GB 128GB", (4, 128)),
])
def test_extract_storage_ram(text, expected):
    assert extract_storage_ram(text) == expected


@pytest.mark.parametrize("text, expected", [
    ("Xiaomi Redmi 14C", Brand.XIAOMI),
    ("XIAOMI redmi", Brand.XIAOMI),
    ("Redmi 14C", Brand.XIAOMI),
    ("Poco X6", Brand.XIAOMI),
    ("Galaxy A15", Brand.SAMSUNG),
    ("moto g84", Brand.MOTOROLA),
    ("Realme C75", Brand.REALME),
    ("Apple iPhone 13", Brand.UNKNOWN),
    ("Smartphone Xiaomi Redmi", Brand.UNKNOWN),
    ("", Brand.UNKNOWN),
])
def test_detect_brand(text, expected):
    assert detect_brand(text) is expected


def test_parse_line_scenario():
    line = parse_line("Xiaomi Redmi 14C 128GB 4GB Preto 4G 650")
    assert line.raw == "Xiaomi Redmi 14C 128GB 4GB Preto 4G 650"
    assert line.brand is Brand.XIAOMI
    assert line.model_base == "redmi 14c"
    assert line.storage_gb == 128
    assert line.ram_gb == 4
    assert line.color is Color.PRETO
    assert line.network == NETWORK_4G
    assert line.price_digits == "650"


def test_parse_line_canonicalizes_realme_c75x():
    line = parse_line("Realme C75X 256GB 8GB Dourado 4G 725")
    assert line.model_base == "c75"
    assert line.price_digits == "725"


def test_parse_line_network_unspecified():
    line = parse_line("Samsung Galaxy A15 128GB 4GB Preto 690")
    assert line.network is None


def test_parse_line_sub_brand_stays_in_model():
    assert parse_line("Redmi 14C 128GB 4GB Preto 4G 650").model_base == "redmi 14c"
    assert parse_line("Galaxy A15 128GB 4GB Azul 4G 690").model_base == "galaxy a15"


def test_parse_line_without_brand_is_dropped():
    assert parse_line("Apple iPhone 13 256GB Preto 3500") is None
    assert parse_line("") is None
    assert parse_line("   1500") is None


def test_parse_line_keeps_raw_verbatim():
    text = "  xiaomi REDMI  Not14 Pro+ 5G 256GB 8GB Roxo 1.890,00  "
    line = parse_line(text)
    assert line.raw == text.strip()
    assert line.model_base == "redmi note 14 pro plus"
    assert line.network == NETWORK_5G


@pytest.mark.parametrize("text, expected", [
    ("Xiaomi Redmi 14C 128GB 4GB Preto 4G 650", "650"),
    ("Motorola Moto G84 256GB 8GB Azul 5G R$ 1.299,00", "129900"),
    ("Motorola Moto G84 256GB 8GB Azul 5G R$1.299", "1299"),
    ("Realme C61 256GB 8GB Dourado 4G 545.00 ", "54500"),
    ("Samsung Galaxy A15 128GB 4GB Preto 4G", "0"),
    ("Samsung Galaxy A15", "0"),
])
def test_extract_price_digits(text, expected):
    assert extract_price_digits(text) == expected


def test_split_lines():
    assert split_lines(" a \r\n\n b\n  \n") == ["a", "b"]


@pytest.mark.parametrize("row", [
    "Redmi 14C 128GB 4GB Preto 4G\t#R14",
    "Poco X6 512GB 12GB Preto 5G\t#PX6",
    "Galaxy A15 128GB 4GB Azul 4G\t#GA15",
    "Moto G84 256GB 8GB Azul 5G\t#MG84",
])
def test_parse_catalog_drops_sub_brand_led_rows(row):
    assert parse_catalog(row) == []


def test_detect_brand_without_sub_brands():
    assert detect_brand("Redmi 14C", sub_brands=False) is Brand.UNKNOWN
    assert detect_brand("Xiaomi Redmi 14C", sub_brands=False) is Brand.XIAOMI
