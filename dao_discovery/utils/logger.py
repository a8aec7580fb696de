import logging

from dao_discovery.config.registry_settings import LOG_FORMAT, LOG_LEVEL

# Shared logger for the discovery layer
logger = logging.getLogger("dao-discovery-logger")
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
logger.propagate = False  # Host applications attach their own root handlers

# Importing twice (tests, reloads) must not stack handlers
if not logger.handlers:
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    logger.addHandler(stream_handler)
