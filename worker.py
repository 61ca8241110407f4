"""
RQ worker entry point — processes background lead jobs from the 'leads' queue.
"""
from rq import Worker

from leadgen.extensions import rq_connection
from leadgen.logging_config import configure_logging


if __name__ == '__main__':
    configure_logging()
    Worker(['leads'], connection=rq_connection).work()
