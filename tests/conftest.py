"""
Shared fixtures for ChatBrain tests.

Every brain is built over an InMemoryStore with a seeded random source so
Markov walks and essay picks are reproducible.
"""

import random

import pytest

from chatbrain.config.settings import Settings
from chatbrain.container import BrainContainer
from chatbrain.persistence.memory_store import InMemoryStore
from chatbrain.state import new_state


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def test_settings():
    """Default settings, independent of the environment of the test run."""
    return Settings(
        max_memory=5000,
        memory_search_window=1500,
        essay_temperature=0.65,
        neural_dim=48,
        trainer_batch_size=30,
        trainer_live_batch_size=15,
        debug=False,
    )


@pytest.fixture
def state():
    """Fresh state tree."""
    return new_state()


@pytest.fixture
def store():
    """In-memory store recording save hints."""
    return InMemoryStore()


@pytest.fixture
def rng():
    return random.Random(7)


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def container(test_settings, store):
    return BrainContainer(settings=test_settings, store=store, seed=7)


@pytest.fixture
def brain(container):
    """ChatBrain over the shared in-memory store."""
    return container.create_brain()
