from __future__ import annotations

import pytest
from reelroom.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from reelroom.schemas.join_requests import CollaboratorRole, JoinRequestCreate


def _request(project_id: str, message: str = "I'd love to shoot this") -> JoinRequestCreate:
    return JoinRequestCreate(project_id=project_id, role=CollaboratorRole.cinematographer, message=message)


def test_send_and_list_requests(stores):
    owner_id, _ = stores.add_user("Owner")
    sender_id, _ = stores.add_user("Sender")
    project_id = stores.add_project(owner_id, title="Dune Walk")

    created = stores.join_requests.send(sender_id, _request(project_id))
    assert created["status"] == "pending"
    assert created["receiver_id"] == owner_id
    assert created["role"] == "Cinematographer"

    [sent] = stores.join_requests.list_sent(sender_id)
    assert sent["project_title"] == "Dune Walk"
    assert sent["receiver_name"] == "Owner"

    [received] = stores.join_requests.list_received(owner_id)
    assert received["sender_name"] == "Sender"


def test_duplicate_and_owner_requests_are_refused(stores):
    owner_id, _ = stores.add_user("Owner")
    sender_id, _ = stores.add_user("Sender")
    project_id = stores.add_project(owner_id)
    stores.join_requests.send(sender_id, _request(project_id))

    with pytest.raises(ConflictError):
        stores.join_requests.send(sender_id, _request(project_id))
    with pytest.raises(ConflictError):
        stores.join_requests.send(owner_id, _request(project_id))
    with pytest.raises(NotFoundError):
        stores.join_requests.send(sender_id, _request("64b7f0c2a1b2c3d4e5f60718"))


def test_only_receiver_may_accept_and_only_once(stores):
    owner_id, _ = stores.add_user("Owner")
    sender_id, _ = stores.add_user("Sender")
    project_id = stores.add_project(owner_id)
    request_id = stores.join_requests.send(sender_id, _request(project_id))["id"]

    with pytest.raises(ForbiddenError):
        stores.join_requests.accept(request_id, sender_id)

    accepted = stores.join_requests.accept(request_id, owner_id)
    assert accepted["status"] == "accepted"
    assert sender_id in stores.projects.get_project(project_id)["collaborators"]

    with pytest.raises(ConflictError):
        stores.join_requests.reject(request_id, owner_id)
    with pytest.raises(ConflictError):
        stores.join_requests.send(sender_id, _request(project_id))


def test_rejected_request_can_be_sent_again(stores):
    owner_id, _ = stores.add_user("Owner")
    sender_id, _ = stores.add_user("Sender")
    project_id = stores.add_project(owner_id)
    request_id = stores.join_requests.send(sender_id, _request(project_id))["id"]

    assert stores.join_requests.reject(request_id, owner_id)["status"] == "rejected"
    assert stores.join_requests.send(sender_id, _request(project_id))["status"] == "pending"


def test_unknown_request_is_not_found(stores):
    owner_id, _ = stores.add_user("Owner")
    with pytest.raises(NotFoundError):
        stores.join_requests.accept("nope", owner_id)


def test_available_projects_excludes_own_requested_and_joined(stores):
    owner_id, _ = stores.add_user("Owner")
    me, _ = stores.add_user("Me")
    mine = stores.add_project(me, title="Mine")
    requested = stores.add_project(owner_id, title="Requested")
    joined = stores.add_project(owner_id, title="Joined")
    open_one = stores.add_project(owner_id, title="Open")
    stores.join_requests.send(me, _request(requested))
    stores.projects.add_collaborator(joined, me)

    titles = {p["title"] for p in stores.join_requests.available_projects(me)}
    assert titles == {"Open"}
    assert mine and open_one


def test_request_message_is_bounded():
    with pytest.raises(ValueError):
        JoinRequestCreate(project_id="p", role=CollaboratorRole.actor, message="x" * 501)
    with pytest.raises(ValueError):
        JoinRequestCreate(project_id="p", role=CollaboratorRole.actor, message="   ")
