"""Tests for leadgen.pipeline.aggregation — merge, dedup and snippet block."""
from leadgen.models.lead import SearchHit, SourceType
from leadgen.pipeline.aggregation import (
    attribute_tiers, build_snippet_block, dedup_key, dedup_leads, merge,
)


def _hit(title, link, tier=1, source_type=SourceType.DIRECTORY):
    return SearchHit(title, f'{title} snippet', link, tier, source_type)


class TestMerge:

    def test_identity_is_lowercased_name_and_url(self):
        assert dedup_key('Acme', 'https://acme.io') == 'acme_https://acme.io'

    def test_first_occurrence_wins(self):
        tier1 = [_hit('Acme', 'https://acme.io')]
        tier2 = [_hit('ACME', 'https://acme.io', tier=2, source_type=SourceType.PAIN)]
        merged = merge([tier1, tier2])
        assert len(merged) == 1
        assert merged[0].tier == 1

    def test_same_name_different_url_kept(self):
        merged = merge([[_hit('Acme', 'https://acme.io'), _hit('Acme', 'https://acme.com')]])
        assert len(merged) == 2

    def test_keeps_first_seen_order(self):
        merged = merge([[_hit('B', 'https://b.io')], [_hit('A', 'https://a.io'), _hit('C', 'https://c.io')]])
        assert [h.title for h in merged] == ['B', 'A', 'C']

    def test_idempotent(self):
        hits = [_hit('A', 'https://a.io'), _hit('a', 'https://a.io'), _hit('B', 'https://b.io')]
        once = merge([hits])
        assert merge([once]) == once
        assert merge([once, once]) == once

    def test_tolerates_empty_lists(self):
        assert merge([[], []]) == []


class TestDedupLeads:

    def test_drops_repeated_company(self, make_lead):
        leads = [make_lead(), make_lead(company_name='ACME ANALYTICS'), make_lead(company_name='Globex',
                                                                                  website='https://globex.com')]
        assert [l.company_name for l in dedup_leads(leads)] == ['Acme Analytics', 'Globex']


class TestSnippetBlock:

    def test_renders_each_hit(self):
        block = build_snippet_block([_hit('Acme', 'https://acme.io')])
        assert block == (
            'Title: Acme\nSnippet: Acme snippet\nLink: https://acme.io\n'
            'Source Type: Directory/Firmographic\n---'
        )

    def test_empty(self):
        assert build_snippet_block([]) == ''


class TestAttributeTiers:

    def test_matches_on_website_host(self, make_lead):
        hits = [_hit('Review of Acme', 'https://www.acme.io/pricing', tier=2, source_type=SourceType.PAIN)]
        (lead,) = attribute_tiers([make_lead()], hits)
        assert lead.tier == 2

    def test_falls_back_to_company_name(self, make_lead):
        hits = [_hit('Acme Analytics reviews', 'https://reviews.example.com/acme', tier=2)]
        (lead,) = attribute_tiers([make_lead()], hits)
        assert lead.tier == 2

    def test_defaults_to_tier1(self, make_lead):
        (lead,) = attribute_tiers([make_lead(tier=2)], [_hit('Other', 'https://other.io', tier=2)])
        assert lead.tier == 1
