import logging
from typing import Awaitable, Callable, Dict, List, Optional, Union

from .exceptions import ApplicationError, InvalidResponseError
from .models import InventoryPage

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100

Cursor = Optional[Union[int, str]]


def _records(value) -> List[Dict]:
    # пустые коллекции Steam отдает как [], непустые как {id: item}
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return list(value)
    raise InvalidResponseError(f"Unexpected inventory collection: {type(value).__name__}")


def parse_inventory_page(body) -> InventoryPage:
    """Разбор JSON-ответа /inventory/json и /partnerinventory"""
    if not isinstance(body, dict):
        raise InvalidResponseError("Invalid Response")

    if not body.get('success'):
        error = body.get('error')
        raise ApplicationError(error if error is not None else "Inventory request was not successful")

    missing = [key for key in ('rgInventory', 'rgDescriptions', 'rgCurrency') if body.get(key) is None]
    if missing:
        raise InvalidResponseError(f"Invalid Response: missing {', '.join(missing)}")

    descriptions = body['rgDescriptions']
    if isinstance(descriptions, list):
        if descriptions:
            raise InvalidResponseError("Unexpected descriptions list")
        descriptions = {}

    return InventoryPage(
        items=_records(body['rgInventory']),
        descriptions=descriptions,
        currencies=_records(body['rgCurrency']),
        success=True,
        error=body.get('error'),
        more=bool(body.get('more')),
        more_start=body.get('more_start'),
    )


def merge_with_descriptions(items: List[Dict], descriptions: Dict, contextid) -> List[Dict]:
    merged = []
    for raw in items:
        item = dict(raw)
        item['instanceid'] = item.get('instanceid') or '0'
        key = f"{item.get('classid')}_{item['instanceid']}"
        description = descriptions.get(key)
        if description is None:
            raise InvalidResponseError(f"No description for item {item.get('id')} ({key})")
        item.update(description)
        # в ответе Steam contextid у предметов нет
        item['contextid'] = contextid
        merged.append(item)
    return merged


def _advanced(cursor: Cursor, next_cursor: Cursor) -> bool:
    if next_cursor is None or next_cursor == '' or next_cursor == cursor:
        return False
    try:
        return cursor is None or int(next_cursor) > int(cursor)
    except (TypeError, ValueError):
        return True


class InventoryAggregator:
    """Последовательно загружает страницы инвентаря и склеивает их в один список"""

    def __init__(self, fetch_page: Callable[[Cursor], Awaitable[InventoryPage]], context_id,
                 max_pages: int = DEFAULT_MAX_PAGES):
        self.fetch_page = fetch_page
        self.context_id = context_id
        self.max_pages = max_pages

    async def load(self) -> List[Dict]:
        inventory: List[Dict] = []
        cursor: Cursor = None
        seen = set()

        for page_number in range(1, self.max_pages + 1):
            page = await self.fetch_page(cursor)
            inventory.extend(merge_with_descriptions(page.items, page.descriptions, self.context_id))
            inventory.extend(merge_with_descriptions(page.currencies, page.descriptions, self.context_id))

            if not page.more:
                logger.debug("inventory loaded: %d items in %d pages", len(inventory), page_number)
                return inventory

            next_cursor = page.more_start
            if not _advanced(cursor, next_cursor) or str(next_cursor) in seen:
                raise InvalidResponseError(
                    f"Inventory pagination did not advance (cursor {cursor!r} -> {next_cursor!r})")
            seen.add(str(next_cursor))
            cursor = next_cursor

        raise InvalidResponseError(f"Inventory has more than {self.max_pages} pages")
