import pytest

from fakenode import FakeNode


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()
