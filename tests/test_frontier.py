import pytest

from deals_crawler.errors import FetchTimeoutError
from deals_crawler.frontier import Frontier, FrontierWalker, discover_successors

from tests.conftest import BASE, ld_page, product_ld


def walker_for(web, **kwargs):
    kwargs.setdefault("page_pause", 0)
    kwargs.setdefault("show_progress", False)
    return FrontierWalker(web.fetch, **kwargs)


def listing(name, links=(), price=10):
    anchors = "".join(f'<a href="{href}">next</a>' for href in links)
    return ld_page(product_ld(name, f"/products/{name}", offers={"price": price}), body=anchors)


def test_frontier_skips_visited_and_empty():
    frontier = Frontier.seeded("a", max_pages=3)
    frontier.extend(["", "a", "b"])
    assert frontier.next_url() == "a"
    assert frontier.next_url() is None
    assert frontier.next_url() is None
    assert frontier.next_url() == "b"
    assert frontier.visited == {"a", "b"}


@pytest.mark.asyncio
async def test_page_cap_holds_on_dense_link_graph(make_web):
    urls = [f"{BASE}/sale?page={i}" for i in range(30)]
    pages = {u: listing(f"item-{i}", links=urls) for i, u in enumerate(urls)}
    web = make_web(pages)

    records = await walker_for(web, max_pages=5).crawl_listing(urls[0])

    assert len(web.calls) == 5
    assert len(set(web.calls)) == 5
    assert len(records) == 5


@pytest.mark.asyncio
async def test_pages_visited_in_fifo_order(make_web):
    seed = f"{BASE}/sale"
    pages = {
        seed: listing("a", links=[f"{BASE}/sale?page=2", f"{BASE}/sale?page=3"]),
        f"{BASE}/sale?page=2": listing("b", links=[f"{BASE}/sale?page=4"]),
        f"{BASE}/sale?page=3": listing("c"),
        f"{BASE}/sale?page=4": listing("d"),
    }
    web = make_web(pages)

    await walker_for(web, max_pages=10).crawl_listing(seed)

    assert web.calls == [seed, f"{BASE}/sale?page=2", f"{BASE}/sale?page=3", f"{BASE}/sale?page=4"]


@pytest.mark.asyncio
async def test_failed_pages_are_skipped(make_web):
    seed = f"{BASE}/sale"
    pages = {
        seed: listing("a", links=[f"{BASE}/sale/page/2", f"{BASE}/sale/page/3", f"{BASE}/sale/page/4"]),
        f"{BASE}/sale/page/2": FetchTimeoutError(f"{BASE}/sale/page/2"),
        f"{BASE}/sale/page/4": listing("d"),
    }
    web = make_web(pages)

    report = await walker_for(web, max_pages=5).walk(seed)

    assert [r.name for r in report.records] == ["a", "d"]
    assert report.pages_fetched == 4
    assert report.pages_failed == 2


@pytest.mark.asyncio
async def test_failed_seed_returns_nothing(make_web):
    web = make_web({})
    assert await walker_for(web).crawl_listing(f"{BASE}/gone") == []


@pytest.mark.asyncio
async def test_other_hosts_are_not_followed(make_web):
    seed = f"{BASE}/sale"
    pages = {seed: listing("a", links=["https://elsewhere.example.org/sale?page=2", "mailto:x@y.z"])}
    web = make_web(pages)

    await walker_for(web).crawl_listing(seed)

    assert web.calls == [seed]


def test_discover_successors_includes_rel_next():
    html = """
    <html><head><link rel="next" href="/sale?page=2"></head>
    <body><a href="/sale">self</a><a href="https://cdn.other.com/x">cdn</a><a href="/about">about</a></body></html>
    """
    found = discover_successors(html, f"{BASE}/sale", f"{BASE}/sale")
    assert found == [f"{BASE}/sale?page=2", f"{BASE}/about"]


@pytest.mark.asyncio
async def test_page_pause_is_awaited_between_pages(make_web, monkeypatch):
    from deals_crawler import frontier as frontier_module

    first, second = f"{BASE}/sale", f"{BASE}/sale?page=2"
    web = make_web({first: listing("a", links=[second]), second: listing("b")})
    events = []

    async def fetch(url):
        events.append(("fetch", url))
        return await web.fetch(url)

    async def fake_sleep(seconds):
        events.append(("sleep", seconds))

    monkeypatch.setattr(frontier_module.asyncio, "sleep", fake_sleep)
    walker = FrontierWalker(fetch, page_pause=0.4, show_progress=False)

    await walker.walk(first)

    assert events[:3] == [("fetch", first), ("sleep", 0.4), ("fetch", second)]


@pytest.mark.asyncio
async def test_walk_uses_injected_frontier(make_web):
    first, second = f"{BASE}/sale", f"{BASE}/sale?page=2"
    web = make_web({first: listing("a", links=[second]), second: listing("b")})
    frontier = Frontier.seeded(second, max_pages=1)

    report = await walker_for(web, max_pages=5).walk(first, frontier=frontier)

    assert web.calls == [second]
    assert [r.name for r in report.records] == ["b"]
    assert frontier.visited == {second}
