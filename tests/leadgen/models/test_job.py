"""Tests for leadgen.models.job — Redis-backed background job record."""
import json
import pytest
from datetime import datetime

from leadgen.models.job import JOB_TTL, LeadJob


class TestLeadJobInit:

    def test_defaults(self, mock_redis):
        job = LeadJob()
        assert len(job.id) == 36
        assert job.status == 'queued'
        assert job.payload == {}
        assert job.leads == []
        datetime.fromisoformat(job.created_at)

    def test_unknown_status_rejected(self, mock_redis):
        with pytest.raises(ValueError):
            LeadJob(status='exploded')


class TestLeadJobPersistence:

    def test_save_writes_blob_with_ttl(self, mock_redis):
        job = LeadJob(id='job-1', payload={'industry': 'SaaS'}).save()
        key, ttl, blob = mock_redis.setex.call_args[0]
        assert key == 'leadjob:job-1'
        assert ttl == JOB_TTL
        assert json.loads(blob)['payload'] == {'industry': 'SaaS'}
        assert list(mock_redis.store) == ['leadjob:job-1']
        mock_redis.zadd.assert_not_called()
        assert job.id == 'job-1'

    def test_load_round_trip(self, mock_redis):
        LeadJob(id='job-2', payload={'industry': 'SaaS'}).save()
        loaded = LeadJob.load('job-2')
        assert loaded.id == 'job-2'
        assert loaded.status == 'queued'
        assert loaded.payload == {'industry': 'SaaS'}

    def test_load_missing(self, mock_redis):
        assert LeadJob.load('nope') is None


class TestLeadJobLifecycle:

    def test_start(self, mock_redis):
        job = LeadJob(id='job-3')
        job.start()
        assert LeadJob.load('job-3').status == 'running'
        assert job.started_at is not None

    def test_complete(self, mock_redis):
        job = LeadJob(id='job-4')
        job.complete([{'companyName': 'Acme'}, {'companyName': 'Globex'}], total=5, stats={'hits': 9})
        loaded = LeadJob.load('job-4')
        assert loaded.status == 'completed'
        assert loaded.count == 2
        assert loaded.total == 5
        assert loaded.stats == {'hits': 9}
        assert loaded.finished_at is not None

    def test_fail(self, mock_redis):
        job = LeadJob(id='job-5')
        job.fail('Max retries reached after 4 attempts. Status: 503')
        loaded = LeadJob.load('job-5')
        assert loaded.status == 'failed'
        assert 'Max retries' in loaded.error
