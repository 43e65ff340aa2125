"""
Shared pytest fixtures for curation tests.
"""
import asyncio
import random

import pytest

from part_curation.config import CurationConfig
from part_curation.models import ImageDimensions
from part_curation.resolver import ImageCandidateResolver


class FakeLoader:
    """Scripted image loader that records every URL it is asked to load."""

    def __init__(self, sizes=None, delay=0.0, default=None):
        self.sizes = dict(sizes or {})
        self.delay = delay
        self.default = default
        self.calls = []
        self.hang = set()
        self.fail = set()

    def count(self, url):
        return self.calls.count(url)

    async def __call__(self, url, timeout):
        self.calls.append(url)
        if url in self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if url in self.fail:
            raise ConnectionError(f"refused: {url}")
        size = self.sizes.get(url, self.default)
        if size is None:
            return None
        return ImageDimensions(*size)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def resolver(loader):
    return ImageCandidateResolver(CurationConfig(), loader=loader)
