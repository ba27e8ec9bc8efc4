import os
import logging
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv
from typing import List, Optional

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    """Configuration settings for the service"""

    # Database settings
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # HTTP settings
    HTTP_HOST: str = os.getenv("HTTP_HOST", "0.0.0.0")
    HTTP_PORT: int = int(os.getenv("HTTP_PORT", "8080"))

    # Admin settings
    ADMIN_IDS: List[int] = [
        int(id_) for id_ in os.getenv("ADMIN_IDS", "").split(",")
        if id_.strip().isdigit()
    ]

    # Restaurant notifications (disabled when empty)
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")

    # Payment gateway settings
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_API_URL: str = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    CURRENCY: str = os.getenv("CURRENCY", "INR")

    # Settlement and ETA settings
    RESTAURANT_COMMISSION_PERCENT: Decimal = Decimal(os.getenv("RESTAURANT_COMMISSION_PERCENT", "15"))
    ETA_AVERAGE_SPEED_KMH: float = float(os.getenv("ETA_AVERAGE_SPEED_KMH", "20"))
    ETA_BUFFER_MINUTES: int = int(os.getenv("ETA_BUFFER_MINUTES", "5"))

    # Other settings
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = BASE_DIR / "logs"

def setup_logging():
    """Configure logging settings"""
    Config.LOG_DIR.mkdir(exist_ok=True)
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_file = Config.LOG_DIR / "quickbite.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
