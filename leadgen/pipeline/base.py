"""
Pipeline state machine contracts.

The orchestrator walks a run through PipelineState values and reports what
happened in a PipelineResult: the path it took, per-stage counters and the
final leads.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from leadgen.models.lead import EnrichedLead


class PipelineState(str, Enum):
    VALIDATING = 'validating'
    SEARCHING_TIER1 = 'searching_tier1'
    SEARCHING_TIER2 = 'searching_tier2'
    AGGREGATING = 'aggregating'
    QUALIFYING = 'qualifying'
    ENRICHING = 'enriching'
    RANKING = 'ranking'
    TRUNCATING = 'truncating'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class PipelineResult:
    """Uniform output of one pipeline run."""
    leads: List[EnrichedLead] = field(default_factory=list)
    total: int = 0
    states: List[PipelineState] = field(default_factory=list)
    hits: int = 0
    unique_hits: int = 0
    qualified: int = 0
    enriched: int = 0
    errors: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.leads)

    @property
    def state(self) -> PipelineState:
        return self.states[-1] if self.states else PipelineState.VALIDATING

    def to_dict(self) -> Dict[str, Any]:
        """HTTP success body."""
        return {
            'leads': [lead.to_dict() for lead in self.leads],
            'count': self.count,
            'total': self.total,
        }

    def stats(self) -> Dict[str, Any]:
        return {
            'states': [s.value for s in self.states],
            'hits': self.hits,
            'unique_hits': self.unique_hits,
            'qualified': self.qualified,
            'enriched': self.enriched,
            'errors': self.errors[-20:],
            'timings': self.timings,
        }
