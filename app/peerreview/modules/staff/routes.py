from __future__ import annotations

from app.peerreview.models import Staff
from app.peerreview.modules.accounts import AccountRoutes


class StaffRoutes(AccountRoutes):
    model = Staff
    role = "staff"
