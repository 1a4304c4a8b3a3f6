from .exceptions import (
    TradeOffersError, TransportError, HttpStatusError, ApplicationError,
    InvalidResponseError, ReceiptFormatError, SessionError, IdentityError, TradeOfferError,
)
from .identity import Identity, account_id_to_steam_id, steam_id_to_account_id, resolve_partner
from .models import Asset, InventoryPage, SessionConfig, TradeOffer, TradeOfferState
from .options import (
    GetOffersOptions, GetSummaryOptions, LoadInventoryOptions, MakeOfferOptions,
    PartnerInventoryOptions,
)
from .steam_client import SteamTradeOffers
