"""
Enrichment & scoring stage.

Each QualifiedLead becomes an EnrichedLead: website liveness, contact
inference, persona match, quality tier and a short premium insight. Every
sub-step falls back to a default on error, so one bad lookup never drops a
lead. Leads are enriched concurrently through gather_settled().
"""
import logging
import re
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

import requests

from leadgen.models.lead import (
    EnrichedLead, PHONE_PLACEHOLDER, QualifiedLead, QualityTier, RequestContext,
)
from leadgen.services.concurrency import gather_settled

logger = logging.getLogger('pipeline.enrichment')

Probe = Callable[[str], bool]

_STOP_WORDS = {
    'the', 'and', 'for', 'with', 'who', 'are', 'our', 'that', 'this', 'from',
    'into', 'their', 'they', 'you', 'your', 'any', 'all', 'has', 'have', 'not',
}
_WORD_RE = re.compile(r'[a-z0-9]+')


# ── Website liveness ─────────────────────────────────────────────────────────

def check_website_status(url: str, timeout: float = 5.0) -> bool:
    """
    True when the site answers with a non-error status.

    HEAD first (following redirects); servers that reject HEAD get a GET.
    """
    if not url:
        return False
    if '://' not in url:
        url = f'https://{url}'

    resp = requests.head(url, allow_redirects=True, timeout=timeout)
    if resp.status_code in (405, 501):
        resp = requests.get(url, allow_redirects=True, timeout=timeout, stream=True)
        resp.close()
    return resp.status_code < 400


def heuristic_website_status(url: str) -> bool:
    """Offline stand-in for check_website_status: live unless marked broken."""
    return 'broken' not in (url or '').lower()


# ── Field inference ──────────────────────────────────────────────────────────

def infer_email(lead: QualifiedLead) -> Optional[str]:
    if lead.email:
        return lead.email
    domain = lead.domain
    return f'contact@{domain}' if domain else None


def infer_phone(lead: QualifiedLead) -> str:
    return lead.phone or PHONE_PLACEHOLDER


def _keywords(text: str) -> set:
    return {w for w in _WORD_RE.findall((text or '').lower()) if len(w) >= 3 and w not in _STOP_WORDS}


def persona_match_score(lead: QualifiedLead, persona: str) -> float:
    """
    Share of persona keywords found in the lead's text, mapped onto [0.5, 1].

    No persona scores a neutral 0.5.
    """
    wanted = _keywords(persona)
    if not wanted:
        return 0.5
    haystack = _keywords(' '.join(filter(None, [
        lead.qualification_summary, lead.pain_point, lead.industry, lead.company_name,
    ])))
    overlap = len(wanted & haystack) / len(wanted)
    return 0.5 + 0.5 * overlap


def quality_score(lead: QualifiedLead) -> QualityTier:
    if 'strong fit' in (lead.qualification_summary or '').lower():
        return QualityTier.HIGH
    if lead.website and lead.pain_point:
        return QualityTier.MEDIUM
    return QualityTier.LOW


def premium_insight(lead: QualifiedLead, ctx: RequestContext) -> str:
    if lead.pain_point:
        return f'{lead.company_name} is showing a buying signal: {lead.pain_point}.'
    if ctx.active_signal:
        return f'Watch {lead.company_name} for: {ctx.active_signal}.'
    return ''


def fill_firmographics(lead: QualifiedLead, ctx: RequestContext) -> QualifiedLead:
    """Carry request facets the model did not return onto the lead."""
    return replace(
        lead,
        industry=lead.industry or ctx.industry,
        location=lead.location or ctx.location,
        size=ctx.size or lead.size,
    )


def _safe(step: str, lead: QualifiedLead, fn, default):
    try:
        return fn()
    except Exception as e:
        logger.warning("%s failed for %s: %s", step, lead.company_name, e)
        return default


# ── Stage entry points ───────────────────────────────────────────────────────

def enrich(lead: QualifiedLead, ctx: RequestContext, *, probe: Probe = check_website_status) -> EnrichedLead:
    """Enrich one lead. Never raises for a sub-step failure."""
    lead = fill_firmographics(lead, ctx)
    return EnrichedLead(
        lead=lead,
        is_website_live=bool(_safe('liveness', lead, lambda: probe(lead.website), False)),
        email=_safe('email', lead, lambda: infer_email(lead), None),
        phone=_safe('phone', lead, lambda: infer_phone(lead), PHONE_PLACEHOLDER),
        persona_match_score=_safe('persona', lead, lambda: persona_match_score(lead, ctx.sales_persona), 0.0),
        quality_score=_safe('quality', lead, lambda: quality_score(lead), QualityTier.LOW),
        premium_insight=_safe('insight', lead, lambda: premium_insight(lead, ctx), ''),
        source_tier=lead.tier or 1,
    )


def enrich_all(
    leads: Sequence[QualifiedLead],
    ctx: RequestContext,
    *,
    probe: Probe = check_website_status,
    max_workers: int = 8,
    deadline: Optional[float] = None,
) -> List[EnrichedLead]:
    """
    Enrich all leads concurrently, preserving input order.

    Raises:
        FanoutTimeoutError: when `deadline` seconds pass before every lead is done.
    """
    outcomes = gather_settled(
        [lambda lead=lead: enrich(lead, ctx, probe=probe) for lead in leads],
        max_workers=max_workers,
        timeout=deadline,
    )
    enriched = []
    for lead, outcome in zip(leads, outcomes):
        if outcome.ok:
            enriched.append(outcome.value)
        else:
            logger.error("Enrichment dropped %s: %s", lead.company_name, outcome.error)
    logger.info("Enriched %d/%d leads", len(enriched), len(leads))
    return enriched
