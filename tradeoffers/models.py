from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Dict, Optional, Tuple, Union

from .identity import Identity, resolve_partner


class TradeOfferState(IntEnum):
    INVALID = 1
    ACTIVE = 2
    ACCEPTED = 3
    COUNTERED = 4
    EXPIRED = 5
    CANCELED = 6
    DECLINED = 7
    INVALID_ITEMS = 8
    NEEDS_CONFIRMATION = 9
    CANCELED_BY_SECOND_FACTOR = 10
    IN_ESCROW = 11


@dataclass
class Asset:
    appid: int
    contextid: str
    assetid: str
    amount: int = 1

    def to_dict(self) -> Dict:
        return {
            'appid': self.appid,
            'contextid': str(self.contextid),
            'assetid': str(self.assetid),
            'amount': self.amount,
        }


@dataclass
class TradeOffer:
    offer_id: str
    partner: Optional[Identity]
    message: str
    items_to_give: List[Dict]
    items_to_receive: List[Dict]
    state: Union[TradeOfferState, int]
    raw: Dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, record: Dict) -> "TradeOffer":
        """Представление записи оффера из IEconService"""
        state = record.get('trade_offer_state', TradeOfferState.INVALID)
        try:
            state = TradeOfferState(int(state))
        except ValueError:
            state = int(state)

        partner = None
        if record.get('accountid_other') is not None or record.get('steamid_other') is not None:
            partner = resolve_partner(
                account_id=record.get('accountid_other'),
                steam_id=record.get('steamid_other'),
            )

        return cls(
            offer_id=str(record.get('tradeofferid', '')),
            partner=partner,
            message=record.get('message') or '',
            items_to_give=list(record.get('items_to_give', [])),
            items_to_receive=list(record.get('items_to_receive', [])),
            state=state,
            raw=record,
        )


@dataclass
class InventoryPage:
    items: List[Dict]        # rgInventory
    descriptions: Dict       # rgDescriptions, ключ classid_instanceid
    currencies: List[Dict]   # rgCurrency
    success: bool = True
    error: Optional[str] = None
    more: bool = False
    more_start: Optional[Union[int, str]] = None


@dataclass(frozen=True)
class SessionConfig:
    api_key: str
    session_id: str
    web_cookies: Tuple[str, ...] = ()
