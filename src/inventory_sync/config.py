import os

# Realtime store
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL")
FIREBASE_AUTH_TOKEN = os.getenv("FIREBASE_AUTH_TOKEN")
PRODUCTS_PATH = os.getenv("PRODUCTS_PATH", "products")

STORE_REQUEST_TIMEOUT = float(os.getenv("STORE_REQUEST_TIMEOUT", 10))
SYNC_READY_TIMEOUT = float(os.getenv("SYNC_READY_TIMEOUT", 10))

# Inventory rules
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 10))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR")

# HTTP
GZIP_MINIMUM_SIZE = int(os.getenv("GZIP_MINIMUM_SIZE", 1000))
