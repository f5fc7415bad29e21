from __future__ import annotations

from app.peerreview.models import Admin
from app.peerreview.modules.accounts import AccountRoutes


class AdminRoutes(AccountRoutes):
    model = Admin
    role = "admin"
