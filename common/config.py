import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    COURTLISTENER_API_TOKEN = os.getenv("COURTLISTENER_API_TOKEN")
    COURTLISTENER_BASE_URL = os.getenv(
        "COURTLISTENER_BASE_URL", "https://www.courtlistener.com/api/rest/v4")
    COURTLISTENER_LEGACY_BASE_URL = os.getenv(
        "COURTLISTENER_LEGACY_BASE_URL", "https://www.courtlistener.com/api/rest/v3")
    COURTLISTENER_SITE_URL = os.getenv(
        "COURTLISTENER_SITE_URL", "https://www.courtlistener.com")
    USER_AGENT = os.getenv(
        "USER_AGENT", "Legal Research Tool/1.0 (Educational Use)")
    MIN_REQUEST_INTERVAL = float(os.getenv("MIN_REQUEST_INTERVAL", 1.0))
    RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", 3))
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 30))
    SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", 120))
    MAX_DOCUMENTS = int(os.getenv("MAX_DOCUMENTS", 20))
    LOG_DIR = os.getenv("LOG_DIR", "./logs/")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE = os.getenv("LOG_FILE", "research.log")
