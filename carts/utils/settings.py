# carts/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carts.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

# sliding TTL, renewed on every read and write of an active cart
CART_TTL_SECONDS = int(os.getenv("CART_TTL_SECONDS", 7 * 24 * 60 * 60))

CART_CREATE_LOCK_ENABLED = os.getenv("CART_CREATE_LOCK_ENABLED", "false").lower() in ("1", "true", "yes")
CART_CREATE_LOCK_TTL_SECONDS = int(os.getenv("CART_CREATE_LOCK_TTL_SECONDS", 10))
CART_CREATE_LOCK_WAIT_SECONDS = float(os.getenv("CART_CREATE_LOCK_WAIT_SECONDS", 5))

EXPORT_BATCH_SIZE = int(os.getenv("EXPORT_BATCH_SIZE", 100))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
