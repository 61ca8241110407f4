"""
Qualification model invoker: aggregated search snippets in, QualifiedLeads out.

Uses the OpenAI SDK against an OpenAI-compatible chat endpoint (Gemini's by
default) with a JSON-schema response format. Output that cannot be decoded
counts as zero leads; items that fail the QualifiedLead boundary are dropped.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from leadgen.config import Settings
from leadgen.errors import ConfigurationError
from leadgen.models.lead import QualifiedLead, RequestContext
from leadgen.services.retry import with_backoff

logger = logging.getLogger('services.qualifier')


LEAD_ITEM_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'properties': {
        'companyName': {'type': 'string', 'description': 'The name of the company or lead.'},
        'website': {'type': 'string', 'description': 'The primary website or listing URL for the lead.'},
        'qualificationSummary': {
            'type': 'string',
            'description': 'A one-sentence summary explaining why this lead is a strong fit based on the search snippets.',
        },
        'painPoint': {'type': 'string', 'description': 'A high-intent pain point or signal identified from the search results.'},
        'contactName': {'type': 'string', 'description': "A tentative contact person's name, if available or inferable."},
        'industry': {'type': 'string', 'description': 'The determined industry of the lead.'},
        'location': {'type': 'string', 'description': 'The primary location of the lead.'},
    },
    'required': ['companyName', 'website', 'qualificationSummary', 'industry'],
}

LEAD_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'properties': {
        'leads': {
            'type': 'array',
            'description': 'A list of qualified leads, each based on the provided search results.',
            'items': LEAD_ITEM_SCHEMA,
        },
    },
    'required': ['leads'],
}

RESPONSE_FORMAT = {
    'type': 'json_schema',
    'json_schema': {'name': 'qualified_leads', 'schema': LEAD_SCHEMA},
}

_FENCE_RE = re.compile(r'^```(?:json)?\s*(.*?)\s*```$', re.DOTALL)


# ── Prompt building ──────────────────────────────────────────────────────────

def build_instruction(ctx: RequestContext) -> str:
    """System role: ground every claim in the snippets and follow the schema."""
    if ctx.is_residential:
        template = 'Focus on individual homeowners, financial capacity, recent property activities.'
    else:
        template = 'Focus on businesses, size, industry relevance, recent developments.'
    return (
        "You are an expert Lead Generation analyst using the provided data.\n"
        "You MUST follow the JSON schema provided in the response format.\n"
        "CRITICAL: All information MUST pertain to the lead referenced in the search results. "
        "Do not invent companies, websites or contacts that are not supported by a snippet.\n"
        f"The leads must align with the target audience: {template}"
    )


def build_request_text(ctx: RequestContext, snippets: str) -> str:
    audience = ctx.lead_type or 'business'
    lines = [
        f"Generate leads for a {audience} audience in the {ctx.industry} sector ({ctx.size}) "
        f"around {ctx.location}. Base your leads STRICTLY on the following AGGREGATED search "
        "results from specialized engines, focusing on the company/lead, website, and a strong "
        "qualification summary.",
    ]
    if ctx.active_signal:
        lines.append(f"Prioritize leads showing this buying signal: {ctx.active_signal}.")
    if ctx.social_focus:
        lines.append(f"Note any presence or activity on: {ctx.social_focus}.")
    lines.append('')
    lines.append('SEARCH RESULTS:')
    lines.append(snippets)
    return '\n'.join(lines)


# ── Parsing ──────────────────────────────────────────────────────────────────

def parse_leads(text: Optional[str]) -> List[QualifiedLead]:
    """Decode model text into QualifiedLeads. Anything undecodable yields []."""
    if not text or not text.strip():
        logger.error("Qualifier returned empty content")
        return []

    body = text.strip()
    fenced = _FENCE_RE.match(body)
    if fenced:
        body = fenced.group(1)

    try:
        data = json.loads(body)
    except ValueError as e:
        logger.error("Qualifier output is not valid JSON: %s", e)
        return []

    items = data.get('leads') if isinstance(data, dict) else data
    if not isinstance(items, list):
        logger.error("Qualifier output has no lead list (got %s)", type(items).__name__)
        return []

    leads = [QualifiedLead.from_dict(item) for item in items]
    accepted = [lead for lead in leads if lead is not None]
    if len(accepted) < len(items):
        logger.warning("Dropped %d/%d malformed leads from qualifier output",
                       len(items) - len(accepted), len(items))
    return accepted


# ── Invoker ──────────────────────────────────────────────────────────────────

class Qualifier:
    """Sends the grounding block to the reasoning model and parses its leads."""

    def __init__(self, client, model: str, timeout: float = 30.0,
                 max_retries: int = 4, base_delay: float = 0.5):
        self.client = client
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    @classmethod
    def from_settings(cls, settings: Settings, client=None) -> 'Qualifier':
        if client is None:
            if not settings.qualifier_api_key:
                raise ConfigurationError('QUALIFIER_API_KEY', 'lead qualification')
            from openai import OpenAI
            client = OpenAI(
                api_key=settings.qualifier_api_key,
                base_url=settings.qualifier_base_url,
                max_retries=0,  # with_backoff owns retries
            )
        return cls(
            client,
            model=settings.qualifier_model,
            timeout=settings.qualifier_timeout,
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
        )

    def qualify(self, snippets: str, instruction_role: str, request_text: str = '') -> List[QualifiedLead]:
        """
        One structured-output call over the aggregated snippets.

        Raises:
            RetryExhaustedError / FatalUpstreamError from the executor.
        """
        user_content = request_text or f"SEARCH RESULTS:\n{snippets}"
        messages = [
            {'role': 'system', 'content': instruction_role},
            {'role': 'user', 'content': user_content},
        ]

        response = with_backoff(
            lambda: self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format=RESPONSE_FORMAT,
                timeout=self.timeout,
            ),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            label='qualifier',
        )

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            logger.error("Qualifier response had no message content")
            return []

        leads = parse_leads(content)
        logger.info("Qualifier produced %d leads", len(leads))
        return leads
