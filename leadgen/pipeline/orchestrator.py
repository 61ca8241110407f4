"""
Lead Orchestrator — Tiered Lead Discovery state machine.

Walks one request through:
  VALIDATING → SEARCHING_TIER1 → SEARCHING_TIER2 (premium only) → AGGREGATING
  → QUALIFYING → ENRICHING → RANKING → TRUNCATING → DONE

Tier 1 failures are fatal; Tier 2 sources degrade to nothing. An optional
deadline is checked between stages and bounds every fan-out wait. The sync
HTTP path runs with a deadline; background jobs run on RQ without one.
"""
import functools
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from leadgen.config import Settings
from leadgen.errors import ConfigurationError, PipelineTimeoutError, RequestValidationError
from leadgen.logging_config import job_context
from leadgen.models.job import LeadJob
from leadgen.models.lead import RequestContext, SearchHit
from leadgen.pipeline.aggregation import attribute_tiers, build_snippet_block, dedup_leads, merge
from leadgen.pipeline.base import PipelineResult, PipelineState
from leadgen.pipeline.enrichment import check_website_status, enrich_all, heuristic_website_status
from leadgen.pipeline.queries import TierKind, compose, tier2_queries
from leadgen.pipeline.ranking import rank
from leadgen.services.concurrency import FanoutTimeoutError, Settled, gather_settled
from leadgen.services.qualifier import Qualifier, build_instruction, build_request_text
from leadgen.services.search import SOURCES, SearchSource, build_source

logger = logging.getLogger('pipeline.orchestrator')


# ── Lazy RQ queue (avoids import-time Redis connection) ──────────────────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from leadgen.extensions import rq_connection
        from rq import Queue
        _queue = Queue('leads', connection=rq_connection)
    return _queue


class LeadOrchestrator:
    """
    Runs the tiered discovery pipeline for one RequestContext at a time.

    Holds configuration and collaborators only; every run builds its own
    sources, pools and intermediate lists.
    """

    def __init__(
        self,
        settings: Settings,
        search_factory: Callable[[str, Settings], SearchSource] = build_source,
        qualifier: Optional[Qualifier] = None,
        probe: Optional[Callable[[str], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.search_factory = search_factory
        self.qualifier = qualifier
        self.probe = probe
        self.clock = clock

    # ── Public API ───────────────────────────────────────────────────────────

    def run_sync(self, ctx: RequestContext) -> PipelineResult:
        return self.run(ctx, self.settings.sync_batch_size, self.settings.sync_deadline_seconds)

    def run_background(self, ctx: RequestContext) -> PipelineResult:
        return self.run(ctx, self.settings.background_batch_size, None)

    def validate(self, ctx: RequestContext) -> Qualifier:
        """
        Check request facets and credentials before any outbound call.

        Returns the qualifier the run will use.
        """
        missing = ctx.missing_fields()
        if missing:
            raise RequestValidationError(missing)
        if not self.settings.search_api_key:
            raise ConfigurationError('SEARCH_API_KEY', 'Tier 1 search')
        if not self.settings.index_id('directory'):
            raise ConfigurationError('DIR_INFO_CSE_ID', 'Tier 1 search')
        if self.qualifier is not None:
            return self.qualifier
        return Qualifier.from_settings(self.settings)

    def run(self, ctx: RequestContext, batch_size: int, deadline_seconds: Optional[float] = None) -> PipelineResult:
        """
        Execute every stage for one request.

        Raises:
            RequestValidationError, ConfigurationError: before any search.
            RetryExhaustedError / FatalUpstreamError: Tier 1 search or qualification failed.
            PipelineTimeoutError: the deadline elapsed.
        """
        result = PipelineResult()
        started = self.clock()
        logger.info("Starting lead run industry=%s location=%s premium=%s",
                    ctx.industry, ctx.location, ctx.has_premium_facets)
        try:
            self._run(ctx, batch_size, deadline_seconds, started, result)
        except Exception as e:
            failed_in = result.state
            result.states.append(PipelineState.FAILED)
            logger.error("Lead run failed during %s: %s", failed_in.value, e)
            raise
        logger.info("Lead run done: %d/%d leads in %.2fs", result.count, result.total,
                    self.clock() - started,
                    extra={'stats': result.stats()})
        return result

    # ── Stages ───────────────────────────────────────────────────────────────

    def _run(self, ctx, batch_size, deadline, started, result: PipelineResult):
        self._enter(result, PipelineState.VALIDATING, started, deadline)
        qualifier = self.validate(ctx)

        self._enter(result, PipelineState.SEARCHING_TIER1, started, deadline)
        hit_lists = [self._search_tier1(ctx, started, deadline)]

        if ctx.has_premium_facets:
            self._enter(result, PipelineState.SEARCHING_TIER2, started, deadline)
            hit_lists.extend(self._search_tier2(ctx, started, deadline, result))

        self._enter(result, PipelineState.AGGREGATING, started, deadline)
        result.hits = sum(len(hits) for hits in hit_lists)
        hits = merge(hit_lists)
        result.unique_hits = len(hits)
        if not hits:
            logger.warning("No search results; skipping qualification")
            result.states.append(PipelineState.DONE)
            return

        self._enter(result, PipelineState.QUALIFYING, started, deadline)
        leads = self._qualify(qualifier, ctx, hits, started, deadline)
        result.qualified = len(leads)
        if not leads:
            logger.warning("Qualifier returned no leads")
            result.states.append(PipelineState.DONE)
            return

        self._enter(result, PipelineState.ENRICHING, started, deadline)
        try:
            enriched = enrich_all(
                leads, ctx,
                probe=self._resolve_probe(),
                max_workers=self.settings.max_fanout_workers,
                deadline=self._remaining(PipelineState.ENRICHING, started, deadline),
            )
        except FanoutTimeoutError as e:
            raise PipelineTimeoutError(PipelineState.ENRICHING.value, deadline) from e
        result.enriched = len(enriched)

        self._enter(result, PipelineState.RANKING, started, deadline)
        ranked = rank(enriched)

        self._enter(result, PipelineState.TRUNCATING, started, deadline)
        result.total = len(ranked)
        result.leads = ranked[:batch_size]
        result.states.append(PipelineState.DONE)

    def _search_tier1(self, ctx, started, deadline) -> List[SearchHit]:
        query = compose(ctx, TierKind.BASELINE)
        source = self.search_factory(TierKind.BASELINE.value, self.settings)
        count = SOURCES[TierKind.BASELINE.value].result_count
        (outcome,) = self._fanout(
            PipelineState.SEARCHING_TIER1,
            [lambda: source.search(query, count)],
            started, deadline,
        )
        if not outcome.ok:
            raise outcome.error
        return outcome.value

    def _search_tier2(self, ctx, started, deadline, result: PipelineResult) -> List[List[SearchHit]]:
        planned = []
        for source_key, query in tier2_queries(ctx):
            if not self.settings.index_id(source_key):
                logger.info("Tier 2 source '%s' has no index configured; skipping", source_key)
                continue
            planned.append((source_key, query))
        if not planned:
            return []

        calls = []
        for source_key, query in planned:
            source = self.search_factory(source_key, self.settings)
            count = SOURCES[source_key].result_count
            calls.append(functools.partial(source.search, query, count))

        outcomes = self._fanout(PipelineState.SEARCHING_TIER2, calls, started, deadline)
        hit_lists = []
        for (source_key, _), outcome in zip(planned, outcomes):
            if outcome.ok:
                hit_lists.append(outcome.value or [])
            else:
                message = f"Tier 2 source '{source_key}' failed: {outcome.error}"
                logger.warning("%s", message)
                result.errors.append(message)
        return hit_lists

    def _qualify(self, qualifier: Qualifier, ctx, hits: List[SearchHit], started, deadline):
        snippets = build_snippet_block(hits)
        instruction = build_instruction(ctx)
        request_text = build_request_text(ctx, snippets)
        (outcome,) = self._fanout(
            PipelineState.QUALIFYING,
            [lambda: qualifier.qualify(snippets, instruction, request_text)],
            started, deadline,
        )
        if not outcome.ok:
            raise outcome.error
        return attribute_tiers(dedup_leads(outcome.value or []), hits)

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _enter(self, result: PipelineResult, state: PipelineState, started: float, deadline: Optional[float]):
        self._remaining(state, started, deadline)
        if result.states:
            previous = result.states[-1]
            result.timings[previous.value] = round(self.clock() - started, 3)
        result.states.append(state)
        logger.debug("→ %s", state.value)

    def _remaining(self, state: PipelineState, started: float, deadline: Optional[float]) -> Optional[float]:
        """Seconds left before the deadline; raises once it has passed."""
        if deadline is None:
            return None
        left = deadline - (self.clock() - started)
        if left <= 0:
            raise PipelineTimeoutError(state.value, deadline)
        return left

    def _fanout(self, state: PipelineState, calls, started, deadline) -> List[Settled]:
        try:
            return gather_settled(
                calls,
                max_workers=self.settings.max_fanout_workers,
                timeout=self._remaining(state, started, deadline),
            )
        except FanoutTimeoutError as e:
            raise PipelineTimeoutError(state.value, deadline) from e

    def _resolve_probe(self) -> Callable[[str], bool]:
        if self.probe is not None:
            return self.probe
        if self.settings.liveness_check_enabled:
            return functools.partial(check_website_status, timeout=self.settings.liveness_timeout)
        return heuristic_website_status


def build_orchestrator(settings: Optional[Settings] = None) -> LeadOrchestrator:
    """Orchestrator wired to env settings and the shared qualifier client."""
    from leadgen.extensions import qualifier_client

    settings = settings or Settings.from_env()
    qualifier = None
    if qualifier_client is not None and settings.qualifier_api_key:
        qualifier = Qualifier.from_settings(settings, client=qualifier_client)
    return LeadOrchestrator(settings, qualifier=qualifier)


# ── Background jobs (enqueued via RQ) ────────────────────────────────────────

def launch_job(payload: Dict[str, Any], orchestrator: Optional[LeadOrchestrator] = None) -> LeadJob:
    """
    Validate a request, record a queued LeadJob and enqueue run_lead_job.

    Validation and credential errors raise here, before anything is queued.
    """
    orchestrator = orchestrator or build_orchestrator()
    orchestrator.validate(RequestContext.from_payload(payload))

    job = LeadJob(payload=payload)
    job.save()
    try:
        _get_queue().enqueue(run_lead_job, job.id,
                             job_timeout=orchestrator.settings.background_job_timeout)
    except Exception as e:
        logger.error("Failed to enqueue lead job %s: %s", job.id, e)
        job.fail(f"Failed to enqueue: {e}")
        raise
    logger.info("Queued lead job %s", job.id)
    return job


def run_lead_job(job_id: str):
    """Worker entry point: run the background pipeline for a stored job."""
    job = LeadJob.load(job_id)
    if not job:
        logger.error("Lead job %s not found", job_id)
        return

    with job_context(job_id):
        job.start()
        try:
            result = build_orchestrator().run_background(RequestContext.from_payload(job.payload))
        except Exception as e:
            logger.exception("Lead job %s failed", job_id)
            job.fail(str(e))
            return
        job.complete([lead.to_dict() for lead in result.leads], total=result.total, stats=result.stats())
        logger.info("Lead job %s completed with %d leads", job_id, result.count)
