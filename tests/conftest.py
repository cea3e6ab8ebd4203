"""Shared fixtures: a file-backed document store and three registered users."""
from __future__ import annotations

import pytest

from taskly.documents import FileDocumentStore
from taskly.models import UserIdentity
from taskly.session import build_services


@pytest.fixture
def store(tmp_path):
    """File-backed document store rooted in a temp directory."""
    return FileDocumentStore(tmp_path / "store")


@pytest.fixture
def services(store):
    return build_services(store)


@pytest.fixture
def alice():
    return UserIdentity(id="uid-alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def bob():
    return UserIdentity(id="uid-bob", email="bob@example.com", display_name="Bob")


@pytest.fixture
def carol():
    return UserIdentity(id="uid-carol", email="carol@example.com", display_name="Carol")


@pytest.fixture
def registered(services, alice, bob, carol):
    """Sign all three users in once so their user records exist."""
    for identity in (alice, bob, carol):
        services.users.upsert_profile(identity)
    return services
