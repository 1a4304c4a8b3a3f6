from dataclasses import dataclass
from typing import Optional, Union

from .exceptions import IdentityError

# universe=public(1), type=individual(1), instance=desktop(1)
STEAM_ID_HEADER = 0x01100001
STEAM_ID_BASE = STEAM_ID_HEADER << 32

ACCOUNT_ID_MASK = 0xFFFFFFFF

IdValue = Union[int, str]


def _parse_int(value: IdValue, kind: str) -> int:
    if isinstance(value, bool):
        raise IdentityError(f"Invalid {kind}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise IdentityError(f"Invalid {kind}: {value!r}")


def account_id_to_steam_id(account_id: IdValue) -> str:
    """32-битный account id -> 64-битный SteamID64 (десятичная строка)"""
    value = _parse_int(account_id, "account id")
    if value < 0 or value > ACCOUNT_ID_MASK:
        raise IdentityError(f"Account id out of range: {account_id!r}")
    return str(STEAM_ID_BASE | value)


def steam_id_to_account_id(steam_id: IdValue) -> str:
    """SteamID64 -> account id (младшие 32 бита)"""
    value = _parse_int(steam_id, "steam id")
    if value < 0 or value >> 64:
        raise IdentityError(f"Steam id out of range: {steam_id!r}")
    if value >> 32 != STEAM_ID_HEADER:
        raise IdentityError(f"Not an individual public account: {steam_id!r}")
    return str(value & ACCOUNT_ID_MASK)


@dataclass(frozen=True)
class Identity:
    """Партнер по обмену: хранится то, что передали, вторая форма вычисляется"""
    given_account_id: Optional[str] = None
    given_steam_id: Optional[str] = None

    @property
    def account_id(self) -> str:
        if self.given_account_id is not None:
            return self.given_account_id
        return steam_id_to_account_id(self.given_steam_id)

    @property
    def steam_id(self) -> str:
        if self.given_steam_id is not None:
            return self.given_steam_id
        return account_id_to_steam_id(self.given_account_id)


def resolve_partner(account_id: Optional[IdValue] = None,
                    steam_id: Optional[IdValue] = None) -> Identity:
    """Проверяет переданный идентификатор и возвращает Identity"""
    if steam_id is None and account_id is None:
        raise IdentityError("Either partner account id or steam id is required")

    if steam_id is not None:
        steam_id = str(_parse_int(steam_id, "steam id"))
        # проверка формата, результат не нужен
        steam_id_to_account_id(steam_id)
    if account_id is not None:
        account_id = str(_parse_int(account_id, "account id"))
        account_id_to_steam_id(account_id)

    return Identity(given_account_id=account_id, given_steam_id=steam_id)
