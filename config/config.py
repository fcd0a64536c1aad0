import os

SIGNATURE_SCHEME = os.environ.get("SIGNATURE_SCHEME", "ML-DSA-87")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_STRUCTURED = os.environ.get("LOG_STRUCTURED", "true").lower() == "true"
LOG_FILE = os.environ.get("LOG_FILE") or None
COIN = 100_000_000             # base units per coin
ADDRESS_PREFIX = "bqs"
