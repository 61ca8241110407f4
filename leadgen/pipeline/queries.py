"""
Query composer: tier-specific search strings built from request facets.

Tier 1 (baseline) always has a query. Tier 2 (premium) queries exist only
when the caller supplied a target type or financial term.
"""
from enum import Enum
from typing import List, Optional, Tuple

from leadgen.models.lead import RequestContext


NEGATIVE_FILTERS = ['-job', '-careers', '-"press release"', '-"blog post"', '-"how to"', '-"ultimate guide"']
NEGATIVE_QUERY = ' '.join(NEGATIVE_FILTERS)

PAIN_PHRASES = '("pain point" OR "switching from" OR "frustrated with")'


class TierKind(str, Enum):
    BASELINE = 'directory'
    PAIN = 'pain'
    COMPETITOR = 'competitor'
    TECH = 'tech'


def simplify_search_term(target_type: str, financial_term: str, is_residential: bool) -> str:
    """Collapse the premium facets into one short search phrase."""
    target_type = (target_type or '').strip()
    financial_term = (financial_term or '').strip()
    if is_residential:
        return financial_term or target_type or 'homeowner'
    if target_type and financial_term:
        return f'{target_type} {financial_term}'
    return target_type or financial_term or 'business service'


def baseline_query(ctx: RequestContext) -> str:
    terms = [t.strip() for t in (ctx.industry, ctx.size, ctx.location) if t and t.strip()]
    return f"{' AND '.join(terms)} {NEGATIVE_QUERY}"


def pain_query(ctx: RequestContext) -> str:
    term = simplify_search_term(ctx.target_type, ctx.financial_term, ctx.is_residential)
    return f'{term} AND {PAIN_PHRASES} in "{ctx.location}" {NEGATIVE_QUERY}'


def competitor_query(ctx: RequestContext) -> Optional[str]:
    if not ctx.target_type:
        return None
    return f'{ctx.target_type} competitors vs alternatives {NEGATIVE_QUERY}'


def tech_query(ctx: RequestContext) -> Optional[str]:
    if not ctx.financial_term:
        return None
    return f'{ctx.financial_term} stack recent investments {NEGATIVE_QUERY}'


_TIER2_BUILDERS = {
    TierKind.PAIN: pain_query,
    TierKind.COMPETITOR: competitor_query,
    TierKind.TECH: tech_query,
}


def compose(ctx: RequestContext, tier_kind: TierKind) -> Optional[str]:
    """Query for one tier kind, or None when that kind does not apply."""
    if tier_kind == TierKind.BASELINE:
        return baseline_query(ctx)
    if not ctx.has_premium_facets:
        return None
    return _TIER2_BUILDERS[tier_kind](ctx)


def tier2_queries(ctx: RequestContext) -> List[Tuple[str, str]]:
    """(source key, query) for every Tier 2 search this request qualifies for."""
    queries = []
    for kind in (TierKind.PAIN, TierKind.COMPETITOR, TierKind.TECH):
        query = compose(ctx, kind)
        if query:
            queries.append((kind.value, query))
    return queries
