"""Ranker: order enriched leads by quality tier, then persona match."""
from typing import Iterable, List

from leadgen.models.lead import EnrichedLead


def rank_key(lead: EnrichedLead):
    return (-lead.quality_score.weight, -lead.persona_match_score)


def rank(leads: Iterable[EnrichedLead]) -> List[EnrichedLead]:
    """Stable sort; exact ties keep qualification order."""
    return sorted(leads, key=rank_key)
