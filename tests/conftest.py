import pytest

from tradeoffers.models import SessionConfig

_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, json_body=_NO_JSON, text=""):
        self.status_code = status_code
        self._json = json_body
        self.text = text

    def json(self):
        if self._json is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeTransport:
    """Отдает заранее подготовленные ответы и запоминает запросы"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.cookies = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def set_cookies(self, cookies):
        self.cookies.extend(cookies)

    def request(self, method, url, params=None, data=None, headers=None):
        self.calls.append({
            'method': method,
            'url': url,
            'params': params,
            'data': data,
            'headers': headers,
        })
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def session_config():
    return SessionConfig(
        api_key="APIKEY",
        session_id="SESSION",
        web_cookies=("steamLoginSecure=abc", "sessionid=SESSION"),
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(session_config, transport):
    from tradeoffers.steam_client import SteamTradeOffers
    return SteamTradeOffers(session_config, transport=transport)
