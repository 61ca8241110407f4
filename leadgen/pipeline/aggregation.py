"""
Aggregation: merge hit lists from concurrent sources and drop duplicates.

Identity is lowercased name + "_" + url. First occurrence wins and output
keeps first-seen order so the qualification prompt is deterministic.
"""
from typing import Iterable, List, Sequence

from leadgen.models.lead import QualifiedLead, SearchHit, website_host


def dedup_key(name: str, url: str) -> str:
    return f"{(name or '').lower()}_{url or ''}"


def merge(hit_lists: Iterable[Sequence[SearchHit]]) -> List[SearchHit]:
    """Flatten and deduplicate hit lists."""
    seen = set()
    merged = []
    for hits in hit_lists:
        for hit in hits or []:
            key = dedup_key(hit.company_name, hit.link)
            if key in seen:
                continue
            seen.add(key)
            merged.append(hit)
    return merged


def dedup_leads(leads: Iterable[QualifiedLead]) -> List[QualifiedLead]:
    """Same identity rule over model output (company name + website)."""
    seen = set()
    unique = []
    for lead in leads:
        key = dedup_key(lead.company_name, lead.website)
        if key in seen:
            continue
        seen.add(key)
        unique.append(lead)
    return unique


def build_snippet_block(hits: Sequence[SearchHit]) -> str:
    """Render hits as the grounding block embedded in the qualification prompt."""
    return '\n'.join(
        f"Title: {h.title}\nSnippet: {h.snippet}\nLink: {h.link}\nSource Type: {h.source_type.value}\n---"
        for h in hits
    )


def attribute_tiers(leads: List[QualifiedLead], hits: Sequence[SearchHit]) -> List[QualifiedLead]:
    """
    Best-effort source tier for each lead: the first hit whose host matches the
    lead's website, else whose title contains the company name. Default 1.
    """
    for lead in leads:
        domain = lead.domain
        name = (lead.company_name or '').lower()
        match = next((h for h in hits if domain and website_host(h.link) == domain), None)
        if match is None and name:
            match = next((h for h in hits if name in (h.title or '').lower()), None)
        lead.tier = match.tier if match else 1
    return leads
