import os
from dotenv import load_dotenv

from tradeoffers.models import SessionConfig

load_dotenv()


class Config:
    STEAM_API_KEY = os.getenv("STEAM_API_KEY")
    STEAM_SESSION_ID = os.getenv("STEAM_SESSION_ID")
    STEAM_WEB_COOKIES = os.getenv("STEAM_WEB_COOKIES", "")  # "steamLoginSecure=...,sessionid=..."
    PROXY = os.getenv("PROXY")  # "http://user:pass@ip:port"
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))
    INVENTORY_MAX_PAGES = int(os.getenv("INVENTORY_MAX_PAGES", "100"))
    LOGS_DIR = os.getenv("LOGS_DIR", "logs")

    @classmethod
    def session_config(cls) -> SessionConfig:
        for name in ("STEAM_API_KEY", "STEAM_SESSION_ID"):
            if not getattr(cls, name):
                raise ValueError(f"{name} is not set")

        cookies = tuple(c.strip() for c in (cls.STEAM_WEB_COOKIES or "").split(",") if c.strip())
        return SessionConfig(
            api_key=cls.STEAM_API_KEY,
            session_id=cls.STEAM_SESSION_ID,
            web_cookies=cookies,
        )
