"""Explicitly constructed service handles shared by the API routes.

Built once per application in ``app.main`` and stored on ``app.state``;
routes receive it through the ``get_services`` dependency.
"""

import asyncio
from dataclasses import dataclass, field

from fastapi import Request

from app.services.xp_ledger import XPLedger


@dataclass
class LeadEngineServices:
    xp_ledger: XPLedger = field(default_factory=XPLedger)
    # Serializes lead imports within this process
    import_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def create_services() -> LeadEngineServices:
    return LeadEngineServices()


def get_services(request: Request) -> LeadEngineServices:
    return request.app.state.services
