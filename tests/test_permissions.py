"""Tests for the role → capability table."""

import pytest

from app.core.permissions import Capability, Role, has_capability


@pytest.mark.parametrize("role", ["founder", "admin", "manager"])
def test_management_roles_have_every_capability(role):
    assert all(has_capability(role, cap) for cap in Capability)


def test_agent_can_only_work_leads():
    assert has_capability(Role.AGENT, Capability.WORK_LEADS)
    for cap in Capability:
        if cap != Capability.WORK_LEADS:
            assert not has_capability("agent", cap)


@pytest.mark.parametrize("role", [None, "", "superadmin", "AGENT"])
def test_unknown_roles_grant_nothing(role):
    assert not has_capability(role, Capability.WORK_LEADS)
