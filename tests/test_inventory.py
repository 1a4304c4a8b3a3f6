import asyncio

import pytest

from tradeoffers.exceptions import ApplicationError, InvalidResponseError
from tradeoffers.inventory import InventoryAggregator, merge_with_descriptions, parse_inventory_page
from tradeoffers.models import InventoryPage

DESCRIPTIONS = {
    "10_0": {'name': "Widget", 'tradable': 1},
    "20_7": {'name': "Gadget", 'tradable': 0, 'tags': [{'category': "Type"}]},
}


def _page(item_ids, more=False, more_start=None, currencies=None):
    items = [{'id': str(i), 'classid': "10", 'instanceid': "0", 'amount': 1} for i in item_ids]
    return InventoryPage(items=items, descriptions=DESCRIPTIONS, currencies=currencies or [],
                         more=more, more_start=more_start)


def _fetcher(pages):
    cursors = []

    async def fetch_page(cursor):
        cursors.append(cursor)
        return pages[len(cursors) - 1]

    return fetch_page, cursors


def test_merge_copies_description_and_context():
    item = {'id': "1", 'classid': "10", 'instanceid': "0", 'amount': 1}
    merged = merge_with_descriptions([item], DESCRIPTIONS, "2")
    assert merged == [{
        'id': "1", 'classid': "10", 'instanceid': "0", 'amount': 1,
        'name': "Widget", 'tradable': 1, 'contextid': "2",
    }]
    assert 'name' not in item


def test_merge_defaults_instance_id():
    merged = merge_with_descriptions([{'id': "1", 'classid': "10", 'amount': 1}], DESCRIPTIONS, "2")
    assert merged[0]['instanceid'] == "0"
    assert merged[0]['name'] == "Widget"


def test_merge_without_description_is_an_error():
    with pytest.raises(InvalidResponseError):
        merge_with_descriptions([{'id': "1", 'classid': "99", 'instanceid': "0"}], DESCRIPTIONS, "2")


def test_parse_page():
    body = {
        'success': True,
        'rgInventory': {"1": {'id': "1", 'classid': "10", 'instanceid': "0", 'amount': "1"}},
        'rgCurrency': [],
        'rgDescriptions': DESCRIPTIONS,
        'more': True,
        'more_start': 2000,
    }
    page = parse_inventory_page(body)
    assert page.items == [{'id': "1", 'classid': "10", 'instanceid': "0", 'amount': "1"}]
    assert page.currencies == []
    assert page.more is True
    assert page.more_start == 2000


def test_parse_page_application_error():
    with pytest.raises(ApplicationError) as exc:
        parse_inventory_page({'success': False, 'error': "This profile is private."})
    assert exc.value.message == "This profile is private."


@pytest.mark.parametrize("missing", ['rgInventory', 'rgDescriptions', 'rgCurrency'])
def test_parse_page_missing_fields(missing):
    body = {'success': True, 'rgInventory': {}, 'rgDescriptions': {}, 'rgCurrency': []}
    del body[missing]
    with pytest.raises(InvalidResponseError):
        parse_inventory_page(body)


@pytest.mark.parametrize("body", [None, [], "html"])
def test_parse_page_not_an_object(body):
    with pytest.raises(InvalidResponseError):
        parse_inventory_page(body)


def test_pagination_collects_pages_in_order():
    currency = {'id': "c1", 'classid': "20", 'instanceid': "7", 'amount': 50}
    pages = [
        _page([1, 2], more=True, more_start=2),
        _page([3], more=True, more_start=3, currencies=[currency]),
        _page([4]),
    ]
    fetch_page, cursors = _fetcher(pages)

    items = asyncio.run(InventoryAggregator(fetch_page, "2").load())

    assert [item['id'] for item in items] == ["1", "2", "3", "c1", "4"]
    assert all(item['contextid'] == "2" for item in items)
    assert items[3]['name'] == "Gadget"
    assert cursors == [None, 2, 3]


def test_pagination_unchanged_cursor_is_an_error():
    pages = [_page([1], more=True, more_start=5), _page([2], more=True, more_start=5), _page([3])]
    fetch_page, cursors = _fetcher(pages)

    with pytest.raises(InvalidResponseError):
        asyncio.run(InventoryAggregator(fetch_page, "2").load())
    assert cursors == [None, 5]


def test_pagination_missing_cursor_is_an_error():
    fetch_page, _ = _fetcher([_page([1], more=True, more_start=None)])
    with pytest.raises(InvalidResponseError):
        asyncio.run(InventoryAggregator(fetch_page, "2").load())


def test_pagination_is_bounded():
    pages = [_page([i], more=True, more_start=i + 1) for i in range(10)]
    fetch_page, cursors = _fetcher(pages)

    with pytest.raises(InvalidResponseError):
        asyncio.run(InventoryAggregator(fetch_page, "2", max_pages=3).load())
    assert len(cursors) == 3


def test_pagination_error_discards_collected_pages():
    async def fetch_page(cursor):
        if cursor is None:
            return _page([1], more=True, more_start=1)
        raise ApplicationError("Busy")

    with pytest.raises(ApplicationError) as exc:
        asyncio.run(InventoryAggregator(fetch_page, "2").load())
    assert exc.value.message == "Busy"


@pytest.mark.parametrize("instanceid", [None, ""])
def test_merge_replaces_empty_instance_id(instanceid):
    merged = merge_with_descriptions([{'id': "1", 'classid': "10", 'instanceid': instanceid}], DESCRIPTIONS, "2")
    assert merged[0]['instanceid'] == "0"
    assert merged[0]['name'] == "Widget"


def test_pagination_decreasing_cursor_is_an_error():
    pages = [_page([1], more=True, more_start=5), _page([2], more=True, more_start=3), _page([3])]
    fetch_page, cursors = _fetcher(pages)

    with pytest.raises(InvalidResponseError):
        asyncio.run(InventoryAggregator(fetch_page, "2").load())
    assert cursors == [None, 5]


def test_pagination_repeated_cursor_is_an_error():
    pages = [
        _page([1], more=True, more_start="a"),
        _page([2], more=True, more_start="b"),
        _page([3], more=True, more_start="a"),
        _page([4]),
    ]
    fetch_page, cursors = _fetcher(pages)

    with pytest.raises(InvalidResponseError):
        asyncio.run(InventoryAggregator(fetch_page, "2").load())
    assert cursors == [None, "a", "b"]
