from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Union

from .models import Asset


class GetOffersOptions(BaseModel):
    """Фильтры GetTradeOffers/v1"""
    get_sent_offers: bool = False
    get_received_offers: bool = False
    get_descriptions: bool = False
    language: Optional[str] = None
    active_only: bool = False
    historical_only: bool = False
    time_historical_cutoff: Optional[int] = None

    def to_params(self) -> Dict:
        params = {}
        for name, value in self.model_dump(exclude_none=True).items():
            params[name] = int(value) if isinstance(value, bool) else value
        return params


class GetSummaryOptions(BaseModel):
    time_last_visit: Optional[int] = None

    def to_params(self) -> Dict:
        return self.model_dump(exclude_none=True)


class LoadInventoryOptions(BaseModel):
    app_id: int
    context_id: str
    language: Optional[str] = None
    # trading=1 отдает только передаваемые предметы
    tradable_only: bool = True


class PartnerInventoryOptions(BaseModel):
    app_id: int
    context_id: str
    partner_account_id: Optional[Union[int, str]] = None
    partner_steam_id: Optional[Union[int, str]] = None
    language: Optional[str] = None
    # оффер, в контексте которого смотрим инвентарь (иначе "new")
    trade_offer_id: Optional[str] = None


class MakeOfferOptions(BaseModel):
    """Создание оффера или контр-оффера"""
    partner_account_id: Optional[Union[int, str]] = None
    partner_steam_id: Optional[Union[int, str]] = None
    items_from_me: List[Union[Asset, Dict]] = Field(default_factory=list)
    items_from_them: List[Union[Asset, Dict]] = Field(default_factory=list)
    message: str = ""
    access_token: Optional[str] = None
    countered_trade_offer_id: Optional[str] = None
