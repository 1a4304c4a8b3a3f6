import requests
from typing import Dict, Iterable, Optional

from .exceptions import TransportError

COOKIE_DOMAIN = "steamcommunity.com"
DEFAULT_TIMEOUT = 15


def parse_cookie(cookie: str):
    """'name=value; Path=/' -> (name, value)"""
    pair = cookie.split(';', 1)[0].strip()
    name, sep, value = pair.partition('=')
    if not sep or not name.strip():
        raise ValueError(f"Invalid cookie string: {cookie!r}")
    return name.strip(), value.strip()


class RequestsTransport:
    """HTTP-транспорт на requests.Session с общей cookie-банкой"""

    def __init__(self, proxy: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.timeout = timeout
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})

    def set_cookies(self, cookies: Iterable[str]):
        for cookie in cookies:
            name, value = parse_cookie(cookie)
            self.session.cookies.set(name, value, domain=COOKIE_DOMAIN, path='/')

    def request(self, method: str, url: str, params: Optional[Dict] = None,
                data: Optional[Dict] = None, headers: Optional[Dict] = None) -> requests.Response:
        try:
            return self.session.request(
                method, url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(e) from e
