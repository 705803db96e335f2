import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Force-load .env from the project root
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DEFAULT_ORIGINS = (
    "http://localhost:3000,"
    "https://payment-gateway-rose.vercel.app,"
    "https://payment-gateway-wgnk.onrender.com"
)


class Settings:
    # Razorpay credentials; missing values disable order creation / webhooks
    RAZORPAY_KEY_ID: str | None = os.getenv("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET: str | None = os.getenv("RAZORPAY_KEY_SECRET")
    RAZORPAY_WEBHOOK_SECRET: str | None = os.getenv("RAZORPAY_WEBHOOK_SECRET")
    RAZORPAY_API_URL: str = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    RAZORPAY_TIMEOUT_SECONDS: float = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "10"))

    # order store
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'payments.db'}")
    CURRENCY: str = os.getenv("CURRENCY", "INR")

    # server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))

    # logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

    def __init__(self):
        # CORS
        origins = os.getenv("ALLOWED_ORIGINS", DEFAULT_ORIGINS)
        self.ALLOWED_ORIGINS: List[str] = [o.strip() for o in origins.split(",") if o.strip()]


settings = Settings()
