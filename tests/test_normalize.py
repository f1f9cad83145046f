import pytest

from deals_crawler.models import RawProduct
from deals_crawler.normalize import dedupe, discount_pct, finalize, to_canonical


@pytest.mark.parametrize("list_price, sale_price", [
    (100, 60), (89.99, 49.99), (10, 10), (3.5, 0.01), (1000, 999.99),
])
def test_discount_for_valid_pairs(list_price, sale_price):
    pct = discount_pct(list_price, sale_price)
    assert pct == round(1 - sale_price / list_price, 4)
    assert 0 <= pct <= 1


@pytest.mark.parametrize("list_price, sale_price", [
    (100, 0), (0, 50), (-10, 5), (50, 60), (None, 40), (40, None), (None, None),
])
def test_discount_is_zero_for_missing_or_inconsistent_prices(list_price, sale_price):
    assert discount_pct(list_price, sale_price) == 0


def test_to_canonical_trims_and_derives_merchant():
    row = to_canonical(RawProduct(
        name="  Down Parka ", brand=" Acme ", url="https://www.gear.example.com/p/parka",
        list_price=200, sale_price=120, source="structured",
    ))
    assert row.merchant == "gear.example.com"
    assert row.name == "Down Parka"
    assert row.brand == "Acme"
    assert row.discount_pct == 0.4


def test_malformed_url_keeps_row_with_empty_merchant():
    row = to_canonical(RawProduct(name="Thing", url="not a url at all", list_price=10, sale_price=5))
    assert row.merchant == ""
    assert row.url == "not a url at all"
    assert row.discount_pct == 0.5


def _raw(name, url, list_price=None, sale_price=None):
    return RawProduct(name=name, url=url, list_price=list_price, sale_price=sale_price)


def test_dedupe_keeps_first_seen():
    rows = [to_canonical(r) for r in (
        _raw("Tent", "https://a.com/tent", 300, 150),
        _raw("Tent", "https://a.com/tent", 300, 280),
        _raw("Tent", "https://a.com/tent-2", 300, 280),
    )]
    out = dedupe(rows)
    assert len(out) == 2
    assert out[0].sale_price == 150


def test_finalize_is_idempotent():
    raw = [
        _raw("Tent", "https://a.com/tent", 300, 150),
        _raw("Tent", "https://a.com/tent", 300, 280),
        _raw("Stove", "https://b.com/stove", 80, 70),
        _raw("", "https://b.com/nameless", 80, 20),
    ]
    once = finalize(raw)
    twice = finalize(raw + raw)
    assert once == twice
    assert once == finalize(list(raw))


def test_deals_are_subset_of_all_products():
    raw = [
        _raw("A", "https://a.com/a", 100, 50),
        _raw("B", "https://a.com/b", 100, 90),
        _raw("C", "https://a.com/c"),
        _raw("D", "", 100, 10),
    ]
    result = finalize(raw)
    all_keys = {r.key for r in result.all_products}
    assert {r.key for r in result.deals} <= all_keys
    assert [r.name for r in result.deals] == ["A"]
    assert [r.name for r in result.all_products] == ["A", "B", "C"]


def test_product_below_threshold_is_not_a_deal():
    result = finalize([_raw("Hoodie", "https://a.com/hoodie", 100, 75)], min_discount=0.30)
    assert [r.name for r in result.all_products] == ["Hoodie"]
    assert result.all_products[0].discount_pct == 0.25
    assert result.deals == ()


def test_threshold_is_inclusive():
    result = finalize([_raw("Boots", "https://a.com/boots", 100, 70)], min_discount=0.30)
    assert [r.name for r in result.deals] == ["Boots"]


def test_finalize_never_raises_on_odd_records():
    raw = [RawProduct(), RawProduct(url="http://[broken"), RawProduct(name="x", url="https://a.com/x", source="")]
    result = finalize(raw)
    assert [r.source for r in result.all_products] == ["unknown"]
