"""Shared test fixtures."""
import pytest
from unittest.mock import patch, MagicMock

from leadgen.config import Settings
from leadgen.models.lead import QualifiedLead, RequestContext, SearchHit, SourceType


@pytest.fixture
def make_settings():
    """Factory fixture — Settings with fake credentials for every source."""
    def _make(**overrides):
        defaults = dict(
            search_api_key='test-search-key',
            index_ids={
                'directory': 'cx-directory',
                'pain': 'cx-pain',
                'competitor': 'cx-competitor',
                'tech': 'cx-tech',
            },
            qualifier_api_key='test-qualifier-key',
            qualifier_base_url='https://qualifier.test/v1/',
            qualifier_model='test-model',
            max_retries=4,
            base_delay=0.0,
            liveness_check_enabled=False,
            sync_batch_size=3,
            background_batch_size=8,
            sync_deadline_seconds=None,
        )
        defaults.update(overrides)
        return Settings(**defaults)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def mock_redis():
    """Mock Redis client for the job record. Stores setex values so load() works."""
    store = {}
    mock = MagicMock()
    mock.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value) or True
    mock.get.side_effect = lambda key: store.get(key)
    mock.store = store
    with patch('leadgen.models.job.r', mock):
        yield mock


@pytest.fixture
def fake_orchestrator(settings):
    """MagicMock standing in for LeadOrchestrator in route tests."""
    orchestrator = MagicMock()
    orchestrator.settings = settings
    return orchestrator


@pytest.fixture
def app(fake_orchestrator):
    """Flask test app wired to the fake orchestrator."""
    from leadgen import create_app
    app = create_app(orchestrator=fake_orchestrator)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def basic_ctx():
    return RequestContext(industry='SaaS', size='11-50', location='Austin, TX')


@pytest.fixture
def premium_ctx():
    return RequestContext(
        industry='SaaS', size='11-50', location='Austin, TX',
        target_type='CRM platform', financial_term='Series A',
        sales_persona='VP of Sales at growing startups',
    )


@pytest.fixture
def sample_hits():
    """Tier 1 hits resembling Custom Search items."""
    return [
        SearchHit('Acme Analytics', 'Austin SaaS, 40 employees', 'https://acme.io',
                  1, SourceType.DIRECTORY),
        SearchHit('Globex Cloud', 'B2B software in Austin', 'https://www.globex.com/about',
                  1, SourceType.DIRECTORY),
    ]


@pytest.fixture
def make_lead():
    """Factory fixture — QualifiedLead with sensible defaults."""
    def _make(**overrides):
        defaults = dict(
            company_name='Acme Analytics',
            website='https://acme.io',
            qualification_summary='Growing SaaS team in Austin.',
            industry='SaaS',
        )
        defaults.update(overrides)
        return QualifiedLead(**defaults)
    return _make
