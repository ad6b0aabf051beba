from __future__ import annotations

import pytest

from arisan_client.session import MemoryRoleStore, Role, Session
from tests.fakes import CALLER


def test_new_wallet_must_pick_a_role():
    session = Session.connect(CALLER, MemoryRoleStore())

    assert session.connected
    assert session.needs_role
    assert not session.is_admin


def test_role_is_remembered_per_wallet():
    roles = MemoryRoleStore()
    Session.connect(CALLER, roles).select_role(Role.ADMIN, roles)

    again = Session.connect(CALLER.upper().replace("0X", "0x"), roles)

    assert again.role == Role.ADMIN
    assert again.is_admin
    assert not again.needs_role


def test_disconnected_session_cannot_pick_a_role():
    session = Session()

    assert not session.connected
    assert not session.needs_role
    with pytest.raises(ValueError):
        session.select_role(Role.USER, MemoryRoleStore())
