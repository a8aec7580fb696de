import os
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --------------------------------------------------
# Registry Gateway Configuration
# --------------------------------------------------
# The registry canister is reached through an HTTP JSON gateway.
REGISTRY_GATEWAY_URL = os.environ.get("REGISTRY_GATEWAY_URL") or "http://127.0.0.1:4943"
DAO_REGISTRY_CANISTER_ID = os.environ.get("DAO_REGISTRY_CANISTER_ID", "")

# Seconds; a request that never resolves must not leave `loading` stuck
REGISTRY_TIMEOUT_SECONDS = float(os.environ.get("REGISTRY_TIMEOUT_SECONDS", "10"))
REGISTRY_CONNECT_TIMEOUT_SECONDS = float(os.environ.get("REGISTRY_CONNECT_TIMEOUT_SECONDS", "5"))

# --------------------------------------------------
# Discovery Defaults
# --------------------------------------------------
DISCOVERY_PAGE_SIZE = int(os.environ.get("DISCOVERY_PAGE_SIZE", "12"))
DISCOVERY_MAX_PAGE_SIZE = int(os.environ.get("DISCOVERY_MAX_PAGE_SIZE", "100"))
DISCOVERY_TRENDING_LIMIT = int(os.environ.get("DISCOVERY_TRENDING_LIMIT", "6"))

# Drop responses of superseded requests instead of last-write-wins
DISCOVERY_DISCARD_STALE = _env_bool("DISCOVERY_DISCARD_STALE", True)
# Deduplicate by dao_id when appending "load more" pages
DISCOVERY_DEDUPE_ON_APPEND = _env_bool("DISCOVERY_DEDUPE_ON_APPEND", False)

# --------------------------------------------------
# Logging
# --------------------------------------------------
LOG_LEVEL = (os.environ.get("LOG_LEVEL") or "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT") or "%(asctime)s - [%(levelname)s] - %(name)s - %(funcName)s() - %(message)s"
