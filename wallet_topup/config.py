import os
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

RUPANTORPAY_LIVE_URL = "https://payment.rupantorpay.com"


def jwt_secret():
    return os.getenv("JWT_SECRET")


def rupantorpay_url(is_live: bool) -> str:
    live = os.getenv("RUPANTORPAY_BASE_URL", RUPANTORPAY_LIVE_URL)
    if is_live:
        return live.rstrip("/")
    return os.getenv("RUPANTORPAY_SANDBOX_URL", live).rstrip("/")


def rupantorpay_timeout() -> float:
    return float(os.getenv("RUPANTORPAY_TIMEOUT", "30"))


def public_base_url():
    url = os.getenv("PUBLIC_BASE_URL")
    return url.rstrip("/") if url else None


def min_topup_amount() -> Decimal:
    return Decimal(os.getenv("MIN_TOPUP_AMOUNT", "10"))


# Largest value a Numeric(12, 2) column holds
def max_topup_amount() -> Decimal:
    return Decimal(os.getenv("MAX_TOPUP_AMOUNT", "9999999999.99"))


def placeholder_phone() -> str:
    return os.getenv("PLACEHOLDER_PHONE", "01000000000")


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
