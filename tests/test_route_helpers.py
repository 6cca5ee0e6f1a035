import pytest

from errors import Forbidden
from schemas import CurrentUser
from utils.route_helpers import can_mutate, ensure_can_mutate


def make_user(user_id=1, role="user"):
    return CurrentUser(id=user_id, username=f"u{user_id}", email=f"u{user_id}@example.com", role=role)


def test_owner_can_mutate():
    assert can_mutate(1, make_user(1))


def test_stranger_cannot_mutate():
    assert not can_mutate(1, make_user(2))


def test_admin_can_mutate_anything():
    assert can_mutate(1, make_user(2, role="admin"))


def test_ensure_can_mutate_message():
    with pytest.raises(Forbidden) as exc:
        ensure_can_mutate(1, make_user(2), "delete", "replies")
    assert exc.value.status_code == 403
    assert exc.value.detail == "Forbidden: You can only delete your own replies."
    ensure_can_mutate(1, make_user(1), "delete", "replies")
