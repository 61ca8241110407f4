"""
Centralized configuration: env vars, pipeline constants, and the Settings
bundle handed to the orchestrator.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional


def _env(name: str, *fallbacks: str, default: Optional[str] = None) -> Optional[str]:
    """First non-empty value among name and its legacy fallbacks."""
    for key in (name, *fallbacks):
        value = os.getenv(key)
        if value:
            return value
    return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis (background jobs) ──────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Custom Search ────────────────────────────────────────────────────────────
SEARCH_API_URL = 'https://www.googleapis.com/customsearch/v1'
SEARCH_API_KEY = _env('SEARCH_API_KEY', 'RYGUY_SEARCH_API_KEY')

# One index (cx) per specialised source
DIR_INFO_CSE_ID = _env('DIR_INFO_CSE_ID')
B2B_PAIN_CSE_ID = _env('B2B_PAIN_CSE_ID', 'RYGUY_SEARCH_ENGINE_ID')
CORP_COMP_CSE_ID = _env('CORP_COMP_CSE_ID')
TECH_SIM_CSE_ID = _env('TECH_SIM_CSE_ID')

# ── Qualification model (OpenAI-compatible endpoint) ────────────────────────
QUALIFIER_API_KEY = _env('QUALIFIER_API_KEY', 'LEAD_QUALIFIER_API_KEY')
QUALIFIER_BASE_URL = _env(
    'QUALIFIER_BASE_URL',
    default='https://generativelanguage.googleapis.com/v1beta/openai/',
)
QUALIFIER_MODEL = _env('QUALIFIER_MODEL', default='gemini-2.5-flash')

# ── Timeouts & retry ─────────────────────────────────────────────────────────
SEARCH_TIMEOUT_SECONDS = _env_float('SEARCH_TIMEOUT_SECONDS', 10.0)
QUALIFIER_TIMEOUT_SECONDS = _env_float('QUALIFIER_TIMEOUT_SECONDS', 30.0)
RETRY_MAX_ATTEMPTS = _env_int('RETRY_MAX_ATTEMPTS', 4)
RETRY_BASE_DELAY_SECONDS = _env_float('RETRY_BASE_DELAY_SECONDS', 0.5)

# ── Enrichment ───────────────────────────────────────────────────────────────
LIVENESS_CHECK_ENABLED = _env_bool('LIVENESS_CHECK_ENABLED', True)
LIVENESS_TIMEOUT_SECONDS = _env_float('LIVENESS_TIMEOUT_SECONDS', 5.0)
MAX_FANOUT_WORKERS = _env_int('MAX_FANOUT_WORKERS', 8)

# ── Invocation modes ─────────────────────────────────────────────────────────
SYNC_BATCH_SIZE = _env_int('SYNC_BATCH_SIZE', 3)
BACKGROUND_BATCH_SIZE = _env_int('BACKGROUND_BATCH_SIZE', 8)
SYNC_DEADLINE_SECONDS = _env_float('SYNC_DEADLINE_SECONDS', 24.0)
BACKGROUND_JOB_TIMEOUT = _env_int('BACKGROUND_JOB_TIMEOUT', 900)

# ── HTTP ─────────────────────────────────────────────────────────────────────
CORS_ALLOW_ORIGIN = os.getenv('CORS_ALLOW_ORIGIN', '*')

# ── Background job status values ─────────────────────────────────────────────
JOB_STATUSES = [
    'queued',
    'running',
    'completed',
    'failed',
]


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration bundle, built once at startup and passed to the
    orchestrator. Tests construct it directly with fake credentials.
    """
    search_api_key: Optional[str] = None
    index_ids: Dict[str, Optional[str]] = field(default_factory=dict)
    search_api_url: str = SEARCH_API_URL
    qualifier_api_key: Optional[str] = None
    qualifier_base_url: Optional[str] = None
    qualifier_model: str = 'gemini-2.5-flash'
    search_timeout: float = 10.0
    qualifier_timeout: float = 30.0
    max_retries: int = 4
    base_delay: float = 0.5
    liveness_check_enabled: bool = True
    liveness_timeout: float = 5.0
    max_fanout_workers: int = 8
    sync_batch_size: int = 3
    background_batch_size: int = 8
    sync_deadline_seconds: Optional[float] = 24.0
    background_job_timeout: int = 900

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            search_api_key=SEARCH_API_KEY,
            index_ids={
                'directory': DIR_INFO_CSE_ID,
                'pain': B2B_PAIN_CSE_ID,
                'competitor': CORP_COMP_CSE_ID,
                'tech': TECH_SIM_CSE_ID,
            },
            search_api_url=SEARCH_API_URL,
            qualifier_api_key=QUALIFIER_API_KEY,
            qualifier_base_url=QUALIFIER_BASE_URL,
            qualifier_model=QUALIFIER_MODEL,
            search_timeout=SEARCH_TIMEOUT_SECONDS,
            qualifier_timeout=QUALIFIER_TIMEOUT_SECONDS,
            max_retries=RETRY_MAX_ATTEMPTS,
            base_delay=RETRY_BASE_DELAY_SECONDS,
            liveness_check_enabled=LIVENESS_CHECK_ENABLED,
            liveness_timeout=LIVENESS_TIMEOUT_SECONDS,
            max_fanout_workers=MAX_FANOUT_WORKERS,
            sync_batch_size=SYNC_BATCH_SIZE,
            background_batch_size=BACKGROUND_BATCH_SIZE,
            sync_deadline_seconds=SYNC_DEADLINE_SECONDS or None,
            background_job_timeout=BACKGROUND_JOB_TIMEOUT,
        )

    def index_id(self, source_key: str) -> Optional[str]:
        return self.index_ids.get(source_key)
