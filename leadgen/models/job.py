"""
LeadJob model — Redis-backed background lead generation job.

A LeadJob tracks one request enqueued on the background endpoint, from
queued to completed (with its leads) or failed (with the error).
"""
import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from leadgen.extensions import redis_client as r
from leadgen.config import JOB_STATUSES


JOB_TTL = 86400 * 7  # 7 days


class LeadJob:
    """
    Redis-backed job record.

    Keys:
        leadjob:{id}    → JSON blob of job state
    """

    def __init__(
        self,
        id: str = None,
        status: str = 'queued',
        payload: Dict = None,
    ):
        if status not in JOB_STATUSES:
            raise ValueError(f"Unknown job status: {status}")
        self.id = id or str(uuid.uuid4())
        self.status = status
        self.payload = payload or {}
        self.created_at = datetime.now().isoformat()
        self.updated_at = self.created_at
        self.started_at = None
        self.finished_at = None
        self.leads: List[Dict[str, Any]] = []
        self.count = 0
        self.total = 0
        self.stats: Dict[str, Any] = {}
        self.error = ''

    def to_dict(self) -> Dict:
        return {
            'jobId': self.id,
            'status': self.status,
            'payload': self.payload,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'leads': self.leads,
            'count': self.count,
            'total': self.total,
            'stats': self.stats,
            'error': self.error,
        }

    def save(self):
        """Persist job state to Redis."""
        self.updated_at = datetime.now().isoformat()
        r.setex(f'leadjob:{self.id}', JOB_TTL, json.dumps(self.to_dict()))
        return self

    def start(self):
        self.status = 'running'
        self.started_at = datetime.now().isoformat()
        self.save()

    def complete(self, leads: List[Dict[str, Any]], total: int = None, stats: Dict[str, Any] = None):
        """Mark job as completed with its serialized leads."""
        self.status = 'completed'
        self.leads = leads
        self.count = len(leads)
        self.total = total if total is not None else len(leads)
        self.stats = stats or {}
        self.finished_at = datetime.now().isoformat()
        self.save()

    def fail(self, reason: str = ''):
        """Mark job as failed."""
        self.status = 'failed'
        self.error = reason
        self.finished_at = datetime.now().isoformat()
        self.save()

    @classmethod
    def load(cls, job_id: str) -> Optional['LeadJob']:
        data = r.get(f'leadjob:{job_id}')
        if not data:
            return None
        d = json.loads(data)
        job = cls.__new__(cls)
        job.id = d['jobId']
        job.status = d['status']
        job.payload = d.get('payload', {})
        job.created_at = d['created_at']
        job.updated_at = d.get('updated_at', job.created_at)
        job.started_at = d.get('started_at')
        job.finished_at = d.get('finished_at')
        job.leads = d.get('leads', [])
        job.count = d.get('count', 0)
        job.total = d.get('total', 0)
        job.stats = d.get('stats', {})
        job.error = d.get('error', '')
        return job
