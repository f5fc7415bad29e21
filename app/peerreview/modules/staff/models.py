from __future__ import annotations

from app.peerreview.models import AccountMixin, Base


class Staff(AccountMixin, Base):
    __tablename__ = "staff"
