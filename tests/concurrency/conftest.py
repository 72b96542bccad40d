"""
Fixtures for concurrency tests.

These tests need a file-backed SQLite database: every thread gets its own
connection, and SQLite's write lock (taken by ``BEGIN IMMEDIATE``)
serializes the writers the same way row locks do on PostgreSQL.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from esg_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)


@pytest.fixture
def file_db(tmp_path):
    """A fresh file-backed database; yields the session factory."""
    init_engine_from_url(f"sqlite:///{tmp_path / 'esg_test.db'}")
    create_tables()
    yield get_session
    reset_engine()


@pytest.fixture
def run_concurrently():
    """
    Run ``worker(index)`` on ``n`` threads released together by a barrier.

    Returns the results in thread order; an exception raised by a worker is
    returned in place of its result.
    """

    def _run(worker, n: int):
        barrier = threading.Barrier(n)

        def _call(index):
            barrier.wait(timeout=10)
            try:
                return worker(index)
            except Exception as exc:
                return exc

        with ThreadPoolExecutor(max_workers=n) as pool:
            futures = [pool.submit(_call, i) for i in range(n)]
            return [f.result(timeout=60) for f in futures]

    return _run
