"""Tests for the explicit session start sequence."""
from __future__ import annotations

import pytest

from taskly.documents import USER_PROFILES, USERS, shared_todos
from taskly.errors import InvitationNotFound, RemoteCallFailure, Unauthorized
from taskly.session import Session


def test_start_runs_full_sequence(services, store, alice, bob):
    Session(services).start(bob)
    alice_session = Session(services).start(alice, photo_url="https://example.com/a.png")
    alice_session.tasks.add({"title": "Buy milk"})
    alice_session.tasks.share(alice_session.tasks.entries[0].id, bob.email, "view")

    bob_session = Session(services).start(bob)

    assert store.get(USERS, alice.id)["email"] == alice.email
    assert store.get(USER_PROFILES, alice.email)["photoURL"] == "https://example.com/a.png"
    assert bob_session.tasks.entries == []
    assert len(bob_session.invitations) == 1


def test_tasks_require_sign_in(services):
    with pytest.raises(Unauthorized):
        Session(services).tasks


def test_end_clears_state(services, alice):
    session = Session(services).start(alice)
    session.tasks.add({"title": "T"})

    session.end()

    assert session.identity is None
    assert session.invitations == []
    with pytest.raises(Unauthorized):
        session.tasks


class TestRespondToInvitation:

    @pytest.fixture
    def bob_session(self, services, alice, bob):
        Session(services).start(bob)
        alice_session = Session(services).start(alice)
        task = alice_session.tasks.add({"title": "Plan trip"}).entry
        alice_session.tasks.share(task.id, bob.email, "edit")
        return Session(services).start(bob)

    def test_accept_refreshes_tasks_and_invitations(self, bob_session, store, bob):
        invitation = bob_session.invitations[0]

        shared_id = bob_session.respond_to_invitation(invitation.id, accept=True)

        assert shared_id is not None
        assert bob_session.invitations == []
        assert [e.shared_id for e in bob_session.tasks.entries] == [shared_id]
        assert store.get(shared_todos(bob.id), shared_id)["permission"] == "edit"

    def test_decline(self, bob_session, store, bob):
        invitation = bob_session.invitations[0]

        shared_id = bob_session.respond_to_invitation(invitation.id, accept=False)

        assert shared_id is None
        assert bob_session.invitations == []
        assert bob_session.tasks.entries == []
        assert store.stream(shared_todos(bob.id)) == []

    def test_unknown_invitation(self, bob_session):
        with pytest.raises(InvitationNotFound):
            bob_session.respond_to_invitation("missing", accept=True)


def test_invitation_failure_keeps_previous_list(services, alice, bob, monkeypatch):
    Session(services).start(bob)
    alice_session = Session(services).start(alice)
    task = alice_session.tasks.add({"title": "T"}).entry
    alice_session.tasks.share(task.id, bob.email)
    bob_session = Session(services).start(bob)

    def fail(*args, **kwargs):
        raise RemoteCallFailure("down")

    monkeypatch.setattr(services.invitations, "list_pending_invitations", fail)

    assert len(bob_session.load_pending_invitations()) == 1


def test_shared_users_for_owner(services, alice, bob):
    Session(services).start(bob)
    alice_session = Session(services).start(alice)
    task = alice_session.tasks.add({"title": "T"}).entry
    alice_session.tasks.share(task.id, bob.email)
    bob_session = Session(services).start(bob)
    bob_session.respond_to_invitation(bob_session.invitations[0].id, accept=True)

    recipients = alice_session.shared_users(task.id)

    assert [u.email for u in recipients.users] == [bob.email]
    assert bob_session.shared_users(task.id).users == []
