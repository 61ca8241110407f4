"""
Lead pipeline data model.

SearchHit -> QualifiedLead -> EnrichedLead, plus the RequestContext facet
bundle that drives a run. All of these live for a single request.
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse


DEFAULT_ACTIVE_SIGNAL = 'actively seeking solution or new provider'
PHONE_PLACEHOLDER = '+1-555-555-1234'

MANDATORY_FACETS = ('industry', 'size', 'location')


class SourceType(str, Enum):
    """Which specialised search index produced a hit."""
    DIRECTORY = 'Directory/Firmographic'
    PAIN = 'Pain/Review'
    COMPETITOR = 'Competitor'
    TECH = 'Tech/Financial'


class QualityTier(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'

    @property
    def weight(self) -> int:
        return {'High': 3, 'Medium': 2, 'Low': 1}[self.value]


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ''


def _facet(value: Any) -> str:
    """Request facet as text; JSON numbers such as {"size": 50} count as present."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return _clean(value)


def website_host(url: str) -> Optional[str]:
    """Host part of a website or listing URL; None when it cannot be resolved."""
    url = _clean(url)
    if not url:
        return None
    if '://' not in url:
        url = f'https://{url}'
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    if not host or '.' not in host:
        return None
    if host.startswith('www.'):
        host = host[4:]
    return host


# ── Search hits ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SearchHit:
    """One normalized result from one search source."""
    title: str
    snippet: str
    link: str
    tier: int
    source_type: SourceType

    @property
    def company_name(self) -> str:
        return self.title

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'snippet': self.snippet,
            'link': self.link,
            'tier': self.tier,
            'sourceType': self.source_type.value,
        }


# ── Qualified leads ──────────────────────────────────────────────────────────

# camelCase key emitted by the model -> dataclass attribute
_MODEL_FIELDS = {
    'companyName': 'company_name',
    'website': 'website',
    'qualificationSummary': 'qualification_summary',
    'industry': 'industry',
    'painPoint': 'pain_point',
    'contactName': 'contact_name',
    'location': 'location',
    'email': 'email',
    'phone': 'phone',
}
_REQUIRED_MODEL_FIELDS = ('companyName', 'website', 'qualificationSummary', 'industry')


@dataclass
class QualifiedLead:
    """A structured candidate lead produced by the qualification model."""
    company_name: str
    website: str
    qualification_summary: str
    industry: str
    pain_point: Optional[str] = None
    contact_name: Optional[str] = None
    location: Optional[str] = None
    size: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    tier: int = 1

    @classmethod
    def from_dict(cls, data: Any) -> Optional['QualifiedLead']:
        """
        Strict parse-or-reject boundary for model output.

        Returns None when the item is not an object, when a required field is
        missing, blank or not a string, or when the website has no resolvable
        host. Optional fields that are not strings are dropped.
        """
        if not isinstance(data, dict):
            return None
        for key in _REQUIRED_MODEL_FIELDS:
            if not _clean(data.get(key)):
                return None
        if website_host(data['website']) is None:
            return None

        kwargs = {}
        for key, attr in _MODEL_FIELDS.items():
            value = _clean(data.get(key))
            if value:
                kwargs[attr] = value

        tier = data.get('tier')
        if isinstance(tier, int) and tier in (1, 2):
            kwargs['tier'] = tier
        return cls(**kwargs)

    @property
    def domain(self) -> Optional[str]:
        return website_host(self.website)


# ── Enriched leads ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EnrichedLead:
    """QualifiedLead plus derived signals. Built once by the enrichment stage."""
    lead: QualifiedLead
    is_website_live: bool
    email: Optional[str]
    phone: str
    persona_match_score: float
    quality_score: QualityTier
    premium_insight: str
    source_tier: int

    def to_dict(self) -> Dict[str, Any]:
        """Render the camelCase shape returned over HTTP."""
        lead = self.lead
        return {
            'companyName': lead.company_name,
            'website': lead.website,
            'qualificationSummary': lead.qualification_summary,
            'painPoint': lead.pain_point,
            'contactName': lead.contact_name,
            'industry': lead.industry,
            'location': lead.location,
            'size': lead.size,
            'isWebsiteLive': self.is_website_live,
            'email': self.email,
            'phone': self.phone,
            'personaMatchScore': round(self.persona_match_score, 4),
            'qualityScore': self.quality_score.value,
            'premiumInsight': self.premium_insight,
            'sourceTier': self.source_tier,
        }


# ── Request context ──────────────────────────────────────────────────────────

@dataclass
class RequestContext:
    """Caller-supplied facets for one pipeline run."""
    industry: str = ''
    size: str = ''
    location: str = ''
    lead_type: str = ''
    target_type: str = ''
    financial_term: str = ''
    sales_persona: str = ''
    social_focus: str = ''
    active_signal: str = DEFAULT_ACTIVE_SIGNAL
    client_profile: str = ''

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'RequestContext':
        """
        Map an HTTP JSON body onto a context.

        targetType wins over searchTerm. For residential quick jobs a
        clientProfile replaces the search term as the target.
        """
        payload = payload or {}
        lead_type = _facet(payload.get('leadType'))
        client_profile = _facet(payload.get('clientProfile'))
        target = _facet(payload.get('targetType')) or _facet(payload.get('searchTerm'))
        if lead_type == 'residential' and client_profile:
            target = client_profile

        return cls(
            industry=_facet(payload.get('industry')),
            size=_facet(payload.get('size')),
            location=_facet(payload.get('location')),
            lead_type=lead_type,
            target_type=target,
            financial_term=_facet(payload.get('financialTerm')),
            sales_persona=_facet(payload.get('salesPersona')),
            social_focus=_facet(payload.get('socialFocus')),
            active_signal=_facet(payload.get('activeSignal')) or DEFAULT_ACTIVE_SIGNAL,
            client_profile=client_profile,
        )

    def missing_fields(self) -> List[str]:
        return [name for name in MANDATORY_FACETS if not _clean(getattr(self, name))]

    @property
    def is_residential(self) -> bool:
        return self.lead_type == 'residential'

    @property
    def has_premium_facets(self) -> bool:
        return bool(_clean(self.target_type) or _clean(self.financial_term))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
