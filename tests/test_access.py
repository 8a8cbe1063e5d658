"""
Tests for the Access Controller

Covers the membership state machine (request/approve/deny, invite/accept,
direct admission, leave), peer introductions, capacity limits and the
notifications each transition produces.
"""

import pytest

from signal_relay import (
    AccessStatus,
    AuthorizationError,
    CapacityError,
    ConflictError,
    MembershipStatus,
    NotFoundError,
    RelayStore,
    SignalingService,
    ConnectionHub,
    Role,
    PRIMARY_ROOM_ID,
)


def _assert_disjoint(room):
    members = set(room.members)
    pending = set(room.pending)
    invited = set(room.invitations)
    assert not members & pending
    assert not members & invited
    assert not pending & invited


@pytest.fixture
def primary(store):
    return store.registry.primary_room


@pytest.fixture
def access(service):
    return service.access


# Authority assignment


def test_authority_claims_primary_room_on_register(register, primary, store, drain, by_type):
    """The first authority-capable user governs and joins the primary room."""
    conn_a = register("alice", role="authority")

    assert primary.authority_id == "alice"
    assert primary.status_of("alice") is MembershipStatus.JOINED
    assert store.directory.get("alice").current_room == PRIMARY_ROOM_ID

    messages = drain(conn_a)
    assert by_type(messages, "registration_successful")
    update = by_type(messages, "participants_update")[-1]
    assert update["data"]["participants"] == [
        {"user_id": "alice", "display_name": "Alice"}
    ]


def test_second_authority_does_not_replace_first(register, primary):
    register("alice", role="authority")
    register("mallory", role="authority")

    assert primary.authority_id == "alice"
    assert primary.status_of("mallory") is MembershipStatus.ABSENT


def test_ordinary_user_does_not_claim_authority(register, primary):
    register("bob")
    assert primary.authority_id is None


# Request / approve / deny


def test_request_join_without_authority_admits_directly(register, access, primary, drain, by_type):
    conn_b = register("bob")
    drain(conn_b)

    status = access.request_join(PRIMARY_ROOM_ID, "bob")

    assert status is MembershipStatus.JOINED
    assert primary.is_member("bob")
    statuses = by_type(drain(conn_b), "access_status")
    assert statuses[-1]["data"]["status"] == "joined"


def test_request_join_with_authority_goes_pending(register, access, primary, drain, by_type):
    """Scenario: B asks to join a governed room and the authority is told."""
    conn_a = register("alice", role="authority")
    conn_b = register("bob")
    drain(conn_a)
    drain(conn_b)

    status = access.request_join(PRIMARY_ROOM_ID, "bob")

    assert status is MembershipStatus.PENDING
    assert primary.status_of("bob") is MembershipStatus.PENDING
    assert primary.pending["bob"].connection_id == conn_b
    assert primary.pending["bob"].display_name == "Bob"

    to_bob = by_type(drain(conn_b), "access_status")
    assert to_bob[-1]["data"]["status"] == "pending_approval"

    requests = by_type(drain(conn_a), "join_request")
    assert requests == [
        {
            "type": "join_request",
            "data": {
                "room_id": PRIMARY_ROOM_ID,
                "requesting_user_id": "bob",
                "requesting_display_name": "Bob",
            },
        }
    ]


def test_request_join_twice_is_rejected(register, access, primary):
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")

    with pytest.raises(ConflictError) as exc_info:
        access.request_join(PRIMARY_ROOM_ID, "bob")

    assert exc_info.value.error_code == "ALREADY_MEMBER"
    assert primary.status_of("bob") is MembershipStatus.PENDING


def test_request_join_by_member_is_rejected(register, access):
    register("alice", role="authority")
    with pytest.raises(ConflictError):
        access.request_join(PRIMARY_ROOM_ID, "alice")


def test_request_join_unknown_room(register, access):
    register("bob")
    with pytest.raises(NotFoundError) as exc_info:
        access.request_join("nope", "bob")
    assert exc_info.value.error_code == "ROOM_NOT_FOUND"


def test_approve_admits_and_broadcasts_participants(register, access, primary, drain, by_type):
    """Scenario: approval puts B in the room and both members see {A, B}."""
    conn_a = register("alice", role="authority")
    conn_b = register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    drain(conn_a)
    drain(conn_b)

    access.approve(PRIMARY_ROOM_ID, "alice", "bob")

    assert primary.status_of("bob") is MembershipStatus.JOINED
    assert "bob" not in primary.pending
    expected = [
        {"user_id": "alice", "display_name": "Alice"},
        {"user_id": "bob", "display_name": "Bob"},
    ]

    alice_messages = drain(conn_a)
    bob_messages = drain(conn_b)
    for messages in (alice_messages, bob_messages):
        updates = by_type(messages, "participants_update")
        assert len(updates) == 1
        participants = updates[0]["data"]["participants"]
        assert sorted(participants, key=lambda p: p["user_id"]) == expected

    assert by_type(bob_messages, "access_status")[-1]["data"]["status"] == "approved"


def test_approve_by_non_authority_is_rejected(register, access, primary):
    register("alice", role="authority")
    register("bob")
    register("carol")
    access.request_join(PRIMARY_ROOM_ID, "bob")

    with pytest.raises(AuthorizationError) as exc_info:
        access.approve(PRIMARY_ROOM_ID, "carol", "bob")

    assert exc_info.value.error_code == "NOT_AUTHORIZED"
    assert primary.status_of("bob") is MembershipStatus.PENDING


def test_deny_notifies_target_and_clears_request(register, access, primary, drain, by_type):
    register("alice", role="authority")
    conn_b = register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    drain(conn_b)

    access.deny(PRIMARY_ROOM_ID, "alice", "bob")

    assert primary.status_of("bob") is MembershipStatus.ABSENT
    statuses = by_type(drain(conn_b), "access_status")
    assert statuses == [
        {"type": "access_status", "data": {"room_id": PRIMARY_ROOM_ID, "status": "denied"}}
    ]


def test_approve_after_deny_fails_without_mutation(register, access, primary):
    """The first of approve/deny wins; the second finds no request."""
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.deny(PRIMARY_ROOM_ID, "alice", "bob")
    members_before = dict(primary.members)

    with pytest.raises(NotFoundError) as exc_info:
        access.approve(PRIMARY_ROOM_ID, "alice", "bob")

    assert exc_info.value.error_code == "REQUEST_NOT_FOUND"
    assert primary.members == members_before


def test_deny_after_approve_fails(register, access, primary):
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.approve(PRIMARY_ROOM_ID, "alice", "bob")

    with pytest.raises(NotFoundError):
        access.deny(PRIMARY_ROOM_ID, "alice", "bob")
    assert primary.is_member("bob")


def test_denied_user_can_request_again(register, access, primary):
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.deny(PRIMARY_ROOM_ID, "alice", "bob")

    assert access.request_join(PRIMARY_ROOM_ID, "bob") is MembershipStatus.PENDING


# Invitations


def test_invite_and_accept_skips_pending(register, access, primary, drain, by_type):
    """Scenario: C joins through an invitation without ever being pending."""
    register("alice", role="authority")
    conn_c = register("carol")
    drain(conn_c)

    access.invite(PRIMARY_ROOM_ID, "alice", "carol")

    assert primary.status_of("carol") is MembershipStatus.INVITED
    invitation = by_type(drain(conn_c), "invitation_received")[0]["data"]
    assert invitation["inviter_id"] == "alice"
    assert invitation["inviter_name"] == "Alice"
    assert invitation["room_id"] == PRIMARY_ROOM_ID

    access.accept_invitation(PRIMARY_ROOM_ID, "carol", "alice")

    assert primary.status_of("carol") is MembershipStatus.JOINED
    assert "carol" not in primary.invitations
    statuses = [m["data"]["status"] for m in by_type(drain(conn_c), "access_status")]
    assert statuses == ["invited_joined"]


def test_accept_with_wrong_inviter_fails_and_stays_invited(register, access, primary):
    register("alice", role="authority")
    register("carol")
    access.invite(PRIMARY_ROOM_ID, "alice", "carol")

    with pytest.raises(NotFoundError) as exc_info:
        access.accept_invitation(PRIMARY_ROOM_ID, "carol", "mallory")

    assert exc_info.value.error_code == "INVALID_INVITATION"
    assert primary.status_of("carol") is MembershipStatus.INVITED


def test_accept_without_invitation_fails(register, access):
    register("carol")
    with pytest.raises(NotFoundError):
        access.accept_invitation(PRIMARY_ROOM_ID, "carol", "alice")
    with pytest.raises(NotFoundError):
        access.accept_invitation("missing-room", "carol", "alice")


def test_request_join_while_invited_is_rejected(register, access, primary):
    register("alice", role="authority")
    register("carol")
    access.invite(PRIMARY_ROOM_ID, "alice", "carol")

    with pytest.raises(ConflictError):
        access.request_join(PRIMARY_ROOM_ID, "carol")
    assert primary.status_of("carol") is MembershipStatus.INVITED


def test_invite_requires_authority(register, access, primary):
    register("alice", role="authority")
    register("bob")
    register("carol")

    with pytest.raises(AuthorizationError):
        access.invite(PRIMARY_ROOM_ID, "bob", "carol")
    assert primary.status_of("carol") is MembershipStatus.ABSENT


def test_invite_in_room_without_authority_fails(register, access):
    register("bob")
    register("carol")
    with pytest.raises(AuthorizationError):
        access.invite(PRIMARY_ROOM_ID, "bob", "carol")


def test_invite_offline_user(register, access):
    register("alice", role="authority")
    with pytest.raises(NotFoundError) as exc_info:
        access.invite(PRIMARY_ROOM_ID, "alice", "ghost")
    assert exc_info.value.error_code == "USER_NOT_FOUND"


def test_invite_pending_user_is_rejected(register, access, primary):
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")

    with pytest.raises(ConflictError):
        access.invite(PRIMARY_ROOM_ID, "alice", "bob")
    _assert_disjoint(primary)


# admit()


def test_admit_is_idempotent(register, access, primary, drain, by_type):
    conn_b = register("bob")
    assert access.admit(PRIMARY_ROOM_ID, "bob") is True
    first = drain(conn_b)

    assert access.admit(PRIMARY_ROOM_ID, "bob") is False

    assert list(primary.members) == ["bob"]
    assert len(by_type(first, "participants_update")) == 1
    assert drain(conn_b) == []


def test_admit_moves_user_out_of_previous_room(register, access, store):
    register("bob")
    access.admit(PRIMARY_ROOM_ID, "bob")

    room = access.create_room("bob", "Side Room")

    assert room.is_member("bob")
    assert not store.registry.primary_room.is_member("bob")
    assert store.directory.get("bob").current_room == room.room_id


def test_capacity_rejects_approve_and_keeps_request():
    store = RelayStore(max_room_members=1)
    hub = ConnectionHub()
    service = SignalingService(store, hub)
    for user_id, role in (("alice", Role.AUTHORITY), ("bob", Role.ORDINARY)):
        hub.add_connection(f"conn-{user_id}", None)
        service.connect(f"conn-{user_id}")
        service.lifecycle.register(
            f"conn-{user_id}", user_id, user_id.capitalize(), role
        )
    room = store.registry.primary_room
    service.access.request_join(PRIMARY_ROOM_ID, "bob")

    with pytest.raises(CapacityError) as exc_info:
        service.access.approve(PRIMARY_ROOM_ID, "alice", "bob")

    assert exc_info.value.error_code == "ROOM_FULL"
    assert room.status_of("bob") is MembershipStatus.PENDING
    assert list(room.members) == ["alice"]


# leave()


def test_leave_notifies_remaining_members(register, access, primary, drain, by_type):
    conn_a = register("alice", role="authority")
    conn_b = register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.approve(PRIMARY_ROOM_ID, "alice", "bob")
    drain(conn_a)
    drain(conn_b)

    access.leave(PRIMARY_ROOM_ID, "bob")

    assert primary.status_of("bob") is MembershipStatus.ABSENT
    bob_messages = drain(conn_b)
    assert by_type(bob_messages, "access_status")[0]["data"]["status"] == "not_joined"
    assert not by_type(bob_messages, "participants_update")

    alice_messages = drain(conn_a)
    update = by_type(alice_messages, "participants_update")[0]
    assert update["data"]["participants"] == [
        {"user_id": "alice", "display_name": "Alice"}
    ]
    left = by_type(alice_messages, "participant_left")[0]["data"]
    assert left["user_id"] == "bob"
    assert left["member_count"] == 1


def test_leave_when_not_member(register, access):
    register("bob")
    with pytest.raises(AuthorizationError) as exc_info:
        access.leave(PRIMARY_ROOM_ID, "bob")
    assert exc_info.value.error_code == "NOT_MEMBER"


def test_leave_last_member_deletes_adhoc_room(register, access, store):
    register("bob")
    room = access.create_room("bob", "Side Room")

    access.leave(room.room_id, "bob")

    assert store.registry.get_room(room.room_id) is None
    assert store.directory.get("bob").current_room is None


def test_primary_room_survives_emptying(register, access, store):
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")

    access.leave(PRIMARY_ROOM_ID, "bob")

    assert store.registry.get_room(PRIMARY_ROOM_ID) is not None
    assert store.registry.primary_room.members == {}


def test_authority_leaving_clears_authority(register, access, primary):
    register("alice", role="authority")
    register("bob")

    access.leave(PRIMARY_ROOM_ID, "alice")

    assert primary.authority_id is None
    assert access.request_join(PRIMARY_ROOM_ID, "bob") is MembershipStatus.JOINED


def test_request_stranded_by_departed_authority_can_be_repeated(register, access, primary):
    register("alice", role="authority")
    register("bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")

    access.leave(PRIMARY_ROOM_ID, "alice")

    assert access.request_join(PRIMARY_ROOM_ID, "bob") is MembershipStatus.JOINED
    assert primary.pending == {}
    assert primary.is_member("bob")


# Ad-hoc rooms


def test_create_room_by_authority_is_moderated(register, access):
    register("alice", role="authority")
    register("bob")

    room = access.create_room("alice", "Office Hours")

    assert room.authority_id == "alice"
    assert room.is_member("alice")
    assert access.request_join(room.room_id, "bob") is MembershipStatus.PENDING


def test_create_room_unmoderated(register, access):
    register("alice", role="authority")
    register("bob")

    room = access.create_room("alice", "Open Room", moderated=False)

    assert room.authority_id is None
    assert access.request_join(room.room_id, "bob") is MembershipStatus.JOINED


def test_create_room_by_ordinary_user_has_no_authority(register, access):
    register("bob")
    room = access.create_room("bob", "Hangout")
    assert room.authority_id is None


# ready_for_relay()


def test_ready_for_relay_introduces_full_mesh(register, access, drain, by_type):
    conns = {user: register(user) for user in ("bob", "carol", "dave")}
    for user in conns:
        access.request_join(PRIMARY_ROOM_ID, user)
    for conn in conns.values():
        drain(conn)

    introduced = access.ready_for_relay(PRIMARY_ROOM_ID, "dave")

    assert introduced == 2
    dave_peers = {
        m["data"]["peer_user_id"]
        for m in by_type(drain(conns["dave"]), "initiate_peer_connection")
    }
    assert dave_peers == {"bob", "carol"}
    for user in ("bob", "carol"):
        notices = by_type(drain(conns[user]), "initiate_peer_connection")
        assert [n["data"]["peer_user_id"] for n in notices] == ["dave"]


def test_ready_for_relay_requires_membership(register, access):
    register("bob")
    with pytest.raises(AuthorizationError):
        access.ready_for_relay(PRIMARY_ROOM_ID, "bob")


# Status reporting and invariants


def test_access_status_reports(register, access):
    register("alice", role="authority")
    register("bob")
    register("carol")
    register("dave")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.invite(PRIMARY_ROOM_ID, "alice", "carol")

    assert access.access_status(PRIMARY_ROOM_ID, "alice") is AccessStatus.APPROVED
    assert access.access_status(PRIMARY_ROOM_ID, "bob") is AccessStatus.PENDING_APPROVAL
    assert access.access_status(PRIMARY_ROOM_ID, "carol") is AccessStatus.INVITED_PENDING_JOIN
    assert access.access_status(PRIMARY_ROOM_ID, "dave") is AccessStatus.NOT_JOINED


def test_statuses_stay_disjoint_through_transitions(register, access, store):
    register("alice", role="authority")
    for user in ("bob", "carol", "dave"):
        register(user)
    room = store.registry.primary_room

    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.invite(PRIMARY_ROOM_ID, "alice", "carol")
    _assert_disjoint(room)
    access.approve(PRIMARY_ROOM_ID, "alice", "bob")
    access.accept_invitation(PRIMARY_ROOM_ID, "carol", "alice")
    _assert_disjoint(room)
    access.leave(PRIMARY_ROOM_ID, "bob")
    access.request_join(PRIMARY_ROOM_ID, "bob")
    access.request_join(PRIMARY_ROOM_ID, "dave")
    _assert_disjoint(room)

    for user_id in room.members:
        assert store.directory.get(user_id).current_room == PRIMARY_ROOM_ID
