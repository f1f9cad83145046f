"""
JSON-LD product extraction.

Reads every application/ld+json block on a page, collects Product nodes (on
their own, inside @graph, or wrapped in an ItemList) and flattens their offers
into RawProduct records.
"""

import json
import logging
from typing import Any, Dict, Iterable, List

from bs4 import BeautifulSoup

from .errors import ParseError
from .models import SOURCE_STRUCTURED, RawProduct, coerce_price
from .urls import try_resolve_url

logger = logging.getLogger(__name__)


def _has_type(node: Any, wanted: str) -> bool:
    if not isinstance(node, dict):
        return False
    t = node.get("@type")
    if isinstance(t, list):
        return any(isinstance(x, str) and x.lower() == wanted for x in t)
    return isinstance(t, str) and t.lower() == wanted


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def parse_json_ld(script_text: str) -> Any:
    """Parse one JSON-LD block, raising ParseError when it is not valid JSON."""
    try:
        return json.loads(script_text)
    except (ValueError, TypeError) as e:
        raise ParseError("JSON-LD block", str(e)) from e


def find_product_nodes(data: Any) -> List[Dict[str, Any]]:
    """Collect Product nodes from a parsed JSON-LD document."""
    top_level: List[Any] = []
    for node in _as_list(data):
        top_level.append(node)
        if isinstance(node, dict) and isinstance(node.get("@graph"), list):
            top_level.extend(node["@graph"])

    products = []
    for node in top_level:
        if _has_type(node, "itemlist"):
            for entry in _as_list(node.get("itemListElement")):
                item = entry.get("item", entry) if isinstance(entry, dict) else None
                if _has_type(item, "product"):
                    products.append(item)
        elif _has_type(node, "product"):
            products.append(node)
    return products


def _brand_name(brand: Any) -> str:
    if isinstance(brand, dict):
        return _text(brand.get("name"))
    if isinstance(brand, list) and brand:
        return _brand_name(brand[0])
    return _text(brand)


def _image_url(image: Any, base_url: str) -> str:
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url") or image.get("contentUrl")
    src = _text(image)
    return try_resolve_url(src, base_url) if src else ""


def _product_url(node: Dict[str, Any], base_url: str) -> str:
    for candidate in (node.get("url"), node.get("@id")):
        if isinstance(candidate, str):
            resolved = try_resolve_url(candidate, base_url)
            if resolved:
                return resolved
    return base_url


def _expand_offers(offers: Any) -> List[Dict[str, Any]]:
    expanded = []
    for offer in _as_list(offers):
        if not isinstance(offer, dict):
            continue
        expanded.append(offer)
        # AggregateOffer may carry the individual offers as well
        if _has_type(offer, "aggregateoffer") and offer.get("offers"):
            expanded.extend(o for o in _as_list(offer["offers"]) if isinstance(o, dict))
    return expanded


def _first_price(*values: Any) -> Any:
    """First value that reads as a positive price."""
    for value in values:
        if coerce_price(value) is not None:
            return value
    return None


def products_from_node(node: Dict[str, Any], base_url: str) -> List[RawProduct]:
    """Flatten one Product node into a RawProduct per offer."""
    name = _text(node.get("name")) or _text(node.get("title"))
    brand = _brand_name(node.get("brand"))
    url = _product_url(node, base_url)
    image = _image_url(node.get("image"), base_url)

    offers = _expand_offers(node.get("offers"))
    if not offers:
        # A product without offers is kept with unknown prices
        return [RawProduct(name=name, brand=brand, url=url, image=image,
                           source=SOURCE_STRUCTURED)]

    records = []
    for offer in offers:
        price_spec = offer.get("priceSpecification")
        if isinstance(price_spec, list):
            price_spec = price_spec[0] if price_spec else None
        if not isinstance(price_spec, dict):
            price_spec = {}
        currency = _text(offer.get("priceCurrency")) or _text(price_spec.get("priceCurrency"))
        # A flat price fills both sides so single-price offers read as 0% off
        list_price = _first_price(price_spec.get("price"), offer.get("highPrice"), offer.get("price"))
        sale_price = _first_price(offer.get("lowPrice"), offer.get("salePrice"), offer.get("price"))
        records.append(RawProduct(
            name=name,
            brand=brand,
            url=url,
            image=image,
            currency=currency,
            list_price=list_price,
            sale_price=sale_price,
            availability=_text(offer.get("availability")),
            source=SOURCE_STRUCTURED,
        ))
    return records


class StructuredExtractor:
    """Extraction strategy reading schema.org Product data from JSON-LD blocks."""

    name = SOURCE_STRUCTURED

    def extract(self, html: str, base_url: str) -> List[RawProduct]:
        soup = BeautifulSoup(html, 'html.parser')
        scripts = soup.find_all('script', type=lambda t: t and 'ld+json' in t.lower())
        logger.debug(f"Found {len(scripts)} JSON-LD scripts on {base_url}")

        nodes: List[Dict[str, Any]] = []
        for script in scripts:
            text = script.string or script.get_text()
            if not text or not text.strip():
                continue
            try:
                data = parse_json_ld(text)
            except ParseError as e:
                logger.debug(f"Skipping block on {base_url}: {e}")
                continue
            nodes.extend(find_product_nodes(data))

        records = self._flatten(nodes, base_url)
        logger.info(f"Extracted {len(records)} products from JSON-LD ({len(nodes)} product nodes) on {base_url}")
        return records

    @staticmethod
    def _flatten(nodes: Iterable[Dict[str, Any]], base_url: str) -> List[RawProduct]:
        records: List[RawProduct] = []
        for node in nodes:
            records.extend(products_from_node(node, base_url))
        return records
