from __future__ import annotations

from app.peerreview.models import AccountMixin, Base


class Admin(AccountMixin, Base):
    __tablename__ = "admins"
