"""Role → capability table.

Every authorization decision in the API goes through ``has_capability``;
routes declare the capability they need via
``app.core.dependencies.require_capability``.
"""

import enum


class Role(str, enum.Enum):
    FOUNDER = "founder"
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"


class Capability(str, enum.Enum):
    IMPORT_LEADS = "import_leads"
    DISTRIBUTE_LEADS = "distribute_leads"
    WORK_LEADS = "work_leads"
    VIEW_TEAM_PERFORMANCE = "view_team_performance"
    APPROVE_SALES = "approve_sales"


_MANAGEMENT = frozenset(Capability)

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.FOUNDER: _MANAGEMENT,
    Role.ADMIN: _MANAGEMENT,
    Role.MANAGER: _MANAGEMENT,
    Role.AGENT: frozenset({Capability.WORK_LEADS}),
}


def has_capability(role: str | Role | None, capability: Capability) -> bool:
    """True when ``role`` grants ``capability``. Unknown roles grant nothing."""
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES[role]
