import asyncio
import json
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from utils.logger import setup_logger
from .exceptions import (
    ApplicationError, HttpStatusError, InvalidResponseError, SessionError,
    TradeOfferError, TradeOffersError,
)
from .identity import account_id_to_steam_id, resolve_partner
from .inventory import DEFAULT_MAX_PAGES, InventoryAggregator, parse_inventory_page
from .models import SessionConfig, TradeOffer
from .options import (
    GetOffersOptions, GetSummaryOptions, LoadInventoryOptions, MakeOfferOptions,
    PartnerInventoryOptions,
)
from .payload import COMMUNITY_URL, build_form_fields, build_offer, build_referer
from .receipt import extract_items
from .transport import RequestsTransport

API_URL = "https://api.steampowered.com/IEconService"


class SteamTradeOffers:
    """Клиент трейд-офферов Steam поверх Web API и веб-сессии steamcommunity.com"""

    def __init__(self, config: SessionConfig, transport=None,
                 logger: Optional[logging.Logger] = None,
                 on_event: Optional[Callable[[Dict], None]] = None,
                 max_inventory_pages: int = DEFAULT_MAX_PAGES):
        self.config = config
        self.transport = transport or RequestsTransport()
        self.transport.set_cookies(config.web_cookies)
        self.logger = logger or logging.getLogger("tradeoffers")
        self.on_event = on_event
        self.max_inventory_pages = max_inventory_pages

    @classmethod
    def from_config(cls, config, transport=None, on_event=None) -> "SteamTradeOffers":
        """Клиент из настроек окружения (см. config.Config)"""
        if transport is None:
            transport = RequestsTransport(proxy=config.PROXY, timeout=config.REQUEST_TIMEOUT)
        return cls(
            config.session_config(),
            transport=transport,
            logger=setup_logger("tradeoffers", config.LOGS_DIR),
            on_event=on_event,
            max_inventory_pages=config.INVENTORY_MAX_PAGES,
        )

    # --- Web API (IEconService)

    async def get_offers(self, options: Optional[GetOffersOptions] = None) -> Dict:
        """GetTradeOffers - входящие и/или исходящие офферы"""
        options = options or GetOffersOptions()
        try:
            self._log_call("GetTradeOffers", "start")
            body = await self._api_call("GetTradeOffers/v1", options.to_params())
            response = self._response_object(body)
            for key in ('trade_offers_received', 'trade_offers_sent'):
                if key in response:
                    response[key] = [self._with_steam_id(offer) for offer in response[key]]
            self._log_call("GetTradeOffers", "success - {} received, {} sent".format(
                len(response.get('trade_offers_received', [])),
                len(response.get('trade_offers_sent', []))))
            return body
        except TradeOffersError as e:
            self._handle_error("GetTradeOffers", e)
            raise

    async def get_offer_views(self, options: Optional[GetOffersOptions] = None) -> Dict[str, List[TradeOffer]]:
        """Офферы в виде TradeOffer: {'received': [...], 'sent': [...]}"""
        body = await self.get_offers(options)
        response = body['response']
        return {
            'received': [TradeOffer.from_api(offer) for offer in response.get('trade_offers_received', [])],
            'sent': [TradeOffer.from_api(offer) for offer in response.get('trade_offers_sent', [])],
        }

    async def get_offer(self, trade_offer_id: str, language: Optional[str] = None) -> Dict:
        """GetTradeOffer - один оффер по id"""
        try:
            self._require_offer_id(trade_offer_id)
            self._log_call("GetTradeOffer", "start", trade_offer_id)
            params = {'tradeofferid': trade_offer_id}
            if language:
                params['language'] = language
            body = await self._api_call("GetTradeOffer/v1", params)
            response = self._response_object(body)
            if 'offer' in response:
                self._with_steam_id(response['offer'])
            self._log_call("GetTradeOffer", "success", trade_offer_id)
            return body
        except TradeOffersError as e:
            self._handle_error("GetTradeOffer", e, trade_offer_id)
            raise

    async def get_summary(self, options: Optional[GetSummaryOptions] = None) -> Dict:
        options = options or GetSummaryOptions()
        try:
            self._log_call("GetTradeOffersSummary", "start")
            body = await self._api_call("GetTradeOffersSummary/v1", options.to_params())
            self._log_call("GetTradeOffersSummary", "success")
            return body
        except TradeOffersError as e:
            self._handle_error("GetTradeOffersSummary", e)
            raise

    async def decline_offer(self, trade_offer_id: str) -> Dict:
        return await self._offer_action("DeclineTradeOffer", trade_offer_id)

    async def cancel_offer(self, trade_offer_id: str) -> Dict:
        return await self._offer_action("CancelTradeOffer", trade_offer_id)

    async def _offer_action(self, name: str, trade_offer_id: str) -> Dict:
        try:
            self._require_offer_id(trade_offer_id)
            self._log_call(name, "start", trade_offer_id)
            body = await self._api_call(f"{name}/v1", {'tradeofferid': trade_offer_id}, post=True)
            self._log_call(name, "success", trade_offer_id)
            return body
        except TradeOffersError as e:
            self._handle_error(name, e, trade_offer_id)
            raise

    # --- веб-сессия steamcommunity.com

    async def accept_offer(self, trade_offer_id: str) -> Dict:
        """Принятие оффера от имени веб-сессии"""
        try:
            self._require_offer_id(trade_offer_id)
            self._log_call("AcceptOffer", "start", trade_offer_id)
            response = await self._send(
                "POST", f"{COMMUNITY_URL}/tradeoffer/{trade_offer_id}/accept",
                data={
                    'sessionid': self.config.session_id,
                    'serverid': 1,
                    'tradeofferid': trade_offer_id,
                },
                headers={'Referer': f"{COMMUNITY_URL}/tradeoffer/{trade_offer_id}/"},
            )
            body = self._read_json(response, "AcceptOffer")
            self._log_call("AcceptOffer", "success", trade_offer_id)
            return body
        except TradeOffersError as e:
            self._handle_error("AcceptOffer", e, trade_offer_id)
            raise

    async def make_offer(self, options: MakeOfferOptions) -> Dict:
        """Создание нового оффера или контр-оффера"""
        countered = options.countered_trade_offer_id
        try:
            partner = resolve_partner(options.partner_account_id, options.partner_steam_id)
            self._log_call("MakeOffer", f"start - partner {partner.steam_id}", countered)

            offer = build_offer(options.items_from_me, options.items_from_them)
            form = build_form_fields(
                offer, self.config.session_id, partner, options.message,
                countered_trade_offer_id=countered,
                access_token=options.access_token,
            )
            referer = build_referer(partner, countered, options.access_token)

            response = await self._send(
                "POST", f"{COMMUNITY_URL}/tradeoffer/new/send",
                data=form, headers={'Referer': referer},
            )
            body = self._read_json(response, "MakeOffer")
            self._log_call("MakeOffer", f"success - offer {body.get('tradeofferid')}", countered)
            return body
        except TradeOffersError as e:
            self._handle_error("MakeOffer", e, countered)
            raise

    async def get_offer_token(self) -> str:
        """Токен доступа из ссылки на странице настроек приватности обменов"""
        try:
            self._log_call("GetOfferToken", "start")
            response = await self._send("GET", f"{COMMUNITY_URL}/my/tradeoffers/privacy")
            self._check_status(response, "GetOfferToken")
            if not response.text:
                raise InvalidResponseError("Invalid Response")

            soup = BeautifulSoup(response.text, "html.parser")
            field = soup.select_one("input#trade_offer_access_url")
            if field is None or not field.get("value"):
                raise SessionError("Trade offer access URL not found")
            token = parse_qs(urlparse(field["value"]).query).get("token")
            if not token:
                raise SessionError("Trade offer access URL has no token")

            self._log_call("GetOfferToken", "success")
            return token[0]
        except TradeOffersError as e:
            self._handle_error("GetOfferToken", e)
            raise

    async def get_items(self, trade_id: str) -> List[Dict]:
        """Предметы завершенного обмена со страницы квитанции"""
        try:
            self._log_call("GetItems", f"start - trade {trade_id}")
            response = await self._send("GET", f"{COMMUNITY_URL}/trade/{trade_id}/receipt/")
            self._check_status(response, "GetItems")
            items = extract_items(response.text)
            self._log_call("GetItems", f"success - {len(items)} items")
            return items
        except TradeOffersError as e:
            self._handle_error("GetItems", e)
            raise

    # --- инвентари

    async def load_my_inventory(self, options: LoadInventoryOptions) -> List[Dict]:
        query = {}
        if options.language:
            query['l'] = options.language
        if options.tradable_only:
            query['trading'] = 1

        url = f"{COMMUNITY_URL}/my/inventory/json/{options.app_id}/{options.context_id}/"
        return await self._load_inventory("LoadMyInventory", url, query, None, options.context_id)

    async def load_partner_inventory(self, options: PartnerInventoryOptions) -> List[Dict]:
        try:
            partner = resolve_partner(options.partner_account_id, options.partner_steam_id)
        except TradeOffersError as e:
            self._handle_error("LoadPartnerInventory", e)
            raise

        query = {
            'sessionid': self.config.session_id,
            'partner': partner.steam_id,
            'appid': options.app_id,
            'contextid': options.context_id,
        }
        if options.language:
            query['l'] = options.language

        offer = options.trade_offer_id or 'new'
        url = f"{COMMUNITY_URL}/tradeoffer/{offer}/partnerinventory/"
        headers = {'Referer': f"{COMMUNITY_URL}/tradeoffer/{offer}/?partner={partner.account_id}"}
        return await self._load_inventory("LoadPartnerInventory", url, query, headers, options.context_id)

    async def _load_inventory(self, name: str, url: str, query: Dict,
                              headers: Optional[Dict], context_id) -> List[Dict]:
        async def fetch_page(cursor):
            params = dict(query)
            if cursor:
                params['start'] = cursor
            response = await self._send("GET", url, params=params, headers=headers)
            return parse_inventory_page(self._read_json(response, name))

        try:
            self._log_call(name, "start")
            aggregator = InventoryAggregator(fetch_page, context_id, max_pages=self.max_inventory_pages)
            items = await aggregator.load()
            self._log_call(name, f"success - {len(items)} items loaded")
            return items
        except TradeOffersError as e:
            self._handle_error(name, e)
            raise

    # --- транспорт и разбор ответов

    async def _send(self, method: str, url: str, params: Optional[Dict] = None,
                    data: Optional[Dict] = None, headers: Optional[Dict] = None):
        # requests блокирует поток, поэтому запрос уходит в отдельный
        return await asyncio.to_thread(
            self.transport.request, method, url, params=params, data=data, headers=headers)

    async def _api_call(self, method: str, params: Dict, post: bool = False) -> Dict:
        url = f"{API_URL}/{method}/"
        query = {'key': self.config.api_key}
        if post:
            response = await self._send("POST", url, params=query, data=params)
        else:
            query.update(params)
            response = await self._send("GET", url, params=query)
        return self._read_json(response, method)

    @staticmethod
    def _check_status(response, context: str):
        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, context)

    def _read_json(self, response, context: str) -> Dict:
        try:
            body = response.json()
        except ValueError:
            body = None

        # Steam отдает ошибки офферов как 500 + strError, текст важнее кода
        if isinstance(body, dict) and body.get('strError'):
            raise ApplicationError(body['strError'], response.status_code)
        if isinstance(body, dict) and body.get('success') is False and body.get('error') is not None:
            raise ApplicationError(body['error'], response.status_code)
        self._check_status(response, context)
        if not isinstance(body, dict):
            raise InvalidResponseError("Invalid Response")
        return body

    @staticmethod
    def _response_object(body: Dict) -> Dict:
        response = body.get('response')
        if not isinstance(response, dict):
            raise InvalidResponseError("Invalid Response: missing 'response' object")
        return response

    @staticmethod
    def _with_steam_id(offer: Dict) -> Dict:
        # записи без accountid_other отдаем как есть
        if offer.get('accountid_other') is None:
            return offer
        offer['steamid_other'] = account_id_to_steam_id(offer.get('accountid_other'))
        return offer

    @staticmethod
    def _require_offer_id(trade_offer_id):
        if not trade_offer_id:
            raise TradeOfferError("Trade offer id is required")

    # --- журнал вызовов

    def _log_call(self, function_name: str, result: str, offer_id: Optional[str] = None,
                  level: int = logging.INFO):
        """Логирование каждого вызова операций клиента"""
        log_entry = {
            'function': function_name,
            'time': datetime.now().isoformat(),
            'offer_id': offer_id,
            'result': result,
        }
        self.logger.log(level, json.dumps(log_entry, ensure_ascii=False))
        if self.on_event is not None:
            self.on_event(log_entry)

    def _handle_error(self, function_name: str, error: Exception, offer_id: Optional[str] = None):
        error_msg = f"{type(error).__name__}: {error}"
        self._log_call(function_name, f"error - {error_msg}", offer_id, level=logging.WARNING)
