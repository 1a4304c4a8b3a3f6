"""Сборка тела и referer для /tradeoffer/new/send.

Steam сверяет referer со страницей, с которой якобы отправлена форма,
поэтому он должен совпадать с адресом побайтно.
"""
import json
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import urlencode

from .identity import Identity
from .models import Asset

COMMUNITY_URL = "https://steamcommunity.com"


def _asset_list(items: Optional[Iterable[Union[Asset, Dict]]]) -> List[Dict]:
    assets = []
    for item in items or []:
        if isinstance(item, Asset):
            assets.append(item.to_dict())
        else:
            assets.append(dict(item))
    return assets


def build_offer(items_from_me, items_from_them) -> Dict:
    return {
        'newversion': True,
        'version': 2,
        'me': {'assets': _asset_list(items_from_me), 'currency': [], 'ready': False},
        'them': {'assets': _asset_list(items_from_them), 'currency': [], 'ready': False},
    }


def build_form_fields(offer: Dict, session_id: str, partner: Identity, message: str = "",
                      countered_trade_offer_id: Optional[str] = None,
                      access_token: Optional[str] = None) -> Dict:
    form = {
        'serverid': 1,
        'sessionid': session_id,
        'partner': partner.steam_id,
        'tradeoffermessage': message or '',
        'json_tradeoffer': json.dumps(offer, separators=(',', ':')),
    }

    if access_token is not None:
        form['trade_offer_create_params'] = json.dumps(
            {'trade_offer_access_token': access_token}, separators=(',', ':'))

    if countered_trade_offer_id is not None:
        form['tradeofferid_countered'] = countered_trade_offer_id

    return form


def build_referer(partner: Identity, countered_trade_offer_id: Optional[str] = None,
                  access_token: Optional[str] = None) -> str:
    if countered_trade_offer_id is not None:
        return f"{COMMUNITY_URL}/tradeoffer/{countered_trade_offer_id}/"

    query = {'partner': partner.account_id}
    if access_token is not None:
        query['token'] = access_token
    return f"{COMMUNITY_URL}/tradeoffer/new/?{urlencode(query)}"
