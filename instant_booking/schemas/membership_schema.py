"""Membership card data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from instant_booking.utils import ensure_aware


class MembershipCard(BaseModel):
    """Customer membership record with its running usage statistics."""

    id: str
    customer_id: str
    status: str = "active"
    is_activated: bool = True
    discount_percentage: float = Field(default=0.0, ge=0, le=100, allow_inf_nan=False)
    expiration_date: datetime
    created_at: datetime
    total_savings: float = 0.0
    orders_count: int = 0
    last_used_at: Optional[datetime] = None

    def is_usable(self, now: datetime) -> bool:
        """Active, activated, and not yet expired at ``now``.

        Naive datetimes on either side are read as local time.
        """
        if self.status != "active" or not self.is_activated:
            return False
        return ensure_aware(self.expiration_date) > ensure_aware(now)
