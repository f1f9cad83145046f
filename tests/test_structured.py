from deals_crawler.models import SOURCE_STRUCTURED
from deals_crawler.normalize import finalize
from deals_crawler.structured import StructuredExtractor, find_product_nodes

from tests.conftest import BASE, ld_page, product_ld

PAGE_URL = BASE + "/collections/sale"


def extract(html):
    return StructuredExtractor().extract(html, PAGE_URL)


def test_price_specification_and_low_price():
    html = ld_page(product_ld(
        "Trail Jacket", BASE + "/products/trail-jacket",
        offers=[{"@type": "Offer", "priceSpecification": {"price": 100}, "lowPrice": 60, "priceCurrency": "USD"}],
    ))
    records = extract(html)
    assert len(records) == 1
    assert records[0].list_price == 100
    assert records[0].sale_price == 60
    assert records[0].source == SOURCE_STRUCTURED

    deals = finalize(records).deals
    assert len(deals) == 1
    assert deals[0].list_price == 100
    assert deals[0].sale_price == 60
    assert deals[0].discount_pct == 0.4


def test_flat_price_fills_both_sides():
    html = ld_page(product_ld("Mug", "/products/mug", offers={"@type": "Offer", "price": "12.00"}))
    [record] = extract(html)
    assert record.list_price == record.sale_price == 12.0
    assert finalize([record]).all_products[0].discount_pct == 0


def test_zero_price_strings_fall_through_to_next_field():
    html = ld_page(product_ld(
        "Headlamp", "/products/headlamp",
        offers={"priceSpecification": {"price": "0.00"}, "highPrice": 80, "lowPrice": "0.0", "price": 50},
    ))
    [record] = extract(html)
    assert record.list_price == 80
    assert record.sale_price == 50


def test_offers_list_yields_one_record_per_offer():
    html = ld_page(product_ld("Sock", "/products/sock", offers=[
        {"price": 10, "availability": "https://schema.org/InStock"},
        {"highPrice": 20, "lowPrice": 8},
    ]))
    records = extract(html)
    assert [(r.list_price, r.sale_price) for r in records] == [(10, 10), (20, 8)]
    assert records[0].availability == "https://schema.org/InStock"


def test_product_without_offers_is_kept_with_unknown_prices():
    [record] = extract(ld_page(product_ld("Rope", "/products/rope")))
    assert record.name == "Rope"
    assert record.list_price is None and record.sale_price is None


def test_item_list_products():
    item_list = {
        "@context": "https://schema.org",
        "@type": "ItemList",
        "itemListElement": [
            {"@type": "ListItem", "position": 1,
             "item": product_ld("A", "/products/a", offers={"price": "19.99", "priceCurrency": "USD"})},
            {"@type": "ListItem", "position": 2, "item": {"@type": "Thing", "name": "not a product"}},
            product_ld("B", "/products/b", offers={"price": 5}),
        ],
    }
    records = extract(ld_page(item_list))
    assert [r.name for r in records] == ["A", "B"]
    assert records[0].url == BASE + "/products/a"
    assert records[0].currency == "USD"


def test_graph_and_type_lists():
    doc = {"@context": "https://schema.org", "@graph": [
        {"@type": "WebPage", "name": "page"},
        {"@type": ["Product", "IndividualProduct"], "name": "Lamp", "url": "/products/lamp"},
    ]}
    assert [n["name"] for n in find_product_nodes(doc)] == ["Lamp"]


def test_malformed_block_does_not_stop_other_blocks():
    html = ld_page('{"@type": "Product", "name": ', product_ld("Good", "/products/good", offers={"price": 3}))
    assert [r.name for r in extract(html)] == ["Good"]


def test_brand_image_and_url_fallbacks():
    node = {
        "@type": "Product",
        "name": "Helmet",
        "@id": "/products/helmet#product",
        "brand": {"@type": "Brand", "name": "Peak"},
        "image": ["/img/helmet-1.jpg", "/img/helmet-2.jpg"],
    }
    [record] = extract(ld_page(node))
    assert record.brand == "Peak"
    assert record.image == BASE + "/img/helmet-1.jpg"
    assert record.url == BASE + "/products/helmet#product"


def test_unresolvable_url_falls_back_to_page():
    node = {"@type": "Product", "name": "Odd", "url": "javascript:void(0)"}
    [record] = extract(ld_page(node))
    assert record.url == PAGE_URL


def test_aggregate_offer_range():
    html = ld_page(product_ld("Range", "/products/range",
                              offers={"@type": "AggregateOffer", "lowPrice": "30", "highPrice": "50"}))
    [record] = extract(html)
    assert (record.list_price, record.sale_price) == (50, 30)


def test_page_without_json_ld():
    assert extract("<html><body><p>nothing here</p></body></html>") == []
