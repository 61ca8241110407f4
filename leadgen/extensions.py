"""
Shared client instances: Redis and the OpenAI-SDK qualifier client.

Creating them never opens a connection, so importing this module is safe even
when env vars are missing during tests.
"""
import logging
import redis

from leadgen.config import (
    REDIS_URL,
    QUALIFIER_API_KEY, QUALIFIER_BASE_URL,
)

logger = logging.getLogger('leadgen.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# RQ pickles job payloads, so its connection must return raw bytes
rq_connection = redis.from_url(REDIS_URL)

# ── Qualifier (OpenAI-compatible endpoint) ────────────────────────────────────
qualifier_client = None
if QUALIFIER_API_KEY:
    try:
        from openai import OpenAI
        qualifier_client = OpenAI(
            api_key=QUALIFIER_API_KEY,
            base_url=QUALIFIER_BASE_URL,
            max_retries=0,
        )
        logger.info("Qualifier client initialized (%s)", QUALIFIER_BASE_URL)
    except Exception as e:
        logger.error("Error initializing qualifier client: %s", e)
else:
    logger.warning("QUALIFIER_API_KEY not set")
