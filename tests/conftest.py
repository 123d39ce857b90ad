"""
Shared pytest fixtures for hashserve tests.
"""

import datetime

import pytest
import requests
from fs.memoryfs import MemoryFS

import hashserve


TODAY = datetime.date(2024, 5, 17)
API_KEY = "secret"


class FakeResponse(object):
    """Stand-in for a streamed ``requests.Response``."""

    def __init__(self, content=b"", status_code=200, chunk=2, error=None):
        self.content = content
        self.status_code = status_code
        self.chunk = chunk
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), self.chunk):
            yield self.content[i:i + self.chunk]
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


class FakeSession(object):
    """Stand-in for ``requests.Session`` serving canned responses by URL."""

    def __init__(self):
        self.responses = {}
        self.calls = []

    def add(self, url, *args, **kwargs):
        response = FakeResponse(*args, **kwargs)
        self.responses[url] = response
        return response

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if url not in self.responses:
            raise requests.ConnectionError("no route to {0}".format(url))
        return self.responses[url]


@pytest.fixture
def legacy_fs():
    return MemoryFS()


@pytest.fixture
def v2_fs():
    return MemoryFS()


@pytest.fixture
def layout(legacy_fs, v2_fs):
    return hashserve.StorageLayout(legacy_fs, v2_fs, today=lambda: TODAY)


@pytest.fixture
def index(layout):
    index = hashserve.DedupIndex(layout)
    yield index
    index.close()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fetcher(session):
    return hashserve.RemoteFetcher(timeout=5, max_size=64, session=session)


@pytest.fixture
def ingestion(index, layout, fetcher):
    return hashserve.IngestionPipeline(index, layout, API_KEY, fetcher=fetcher)


@pytest.fixture
def retrieval(index, layout):
    return hashserve.RetrievalPipeline(index, layout)


def v2_files(v2_fs):
    return sorted(v2_fs.walk.files())
