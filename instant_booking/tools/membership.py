"""
Membership card lookup and usage bookkeeping.

In production this queries the membership_cards table. Usage statistics
(total savings, order count) are only updated after a booking has been
persisted; the pricing code never touches them.
"""

import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Optional, Protocol

from instant_booking.errors import MembershipNotFoundError
from instant_booking.logging_context import get_request_logger
from instant_booking.schemas.membership_schema import MembershipCard
from instant_booking.utils import ensure_aware, round2

logger = get_request_logger(__name__)


class MembershipLookup(Protocol):
    def find_active(self, customer_id: str, now: datetime) -> Optional[MembershipCard]:
        """Most recently created usable card for the customer, if any."""
        ...

    def record_usage(
        self, card_id: str, discount_amount: float, original_amount: float, now: datetime
    ) -> MembershipCard: ...


class InMemoryMembershipStore:
    def __init__(self, cards: Iterable[MembershipCard] = ()) -> None:
        self._cards: dict[str, MembershipCard] = {card.id: card for card in cards}
        self._lock = threading.Lock()

    def add(self, card: MembershipCard) -> None:
        with self._lock:
            self._cards[card.id] = card

    def get(self, card_id: str) -> Optional[MembershipCard]:
        return self._cards.get(card_id)

    def find_active(self, customer_id: str, now: datetime) -> Optional[MembershipCard]:
        usable = [
            card
            for card in self._cards.values()
            if card.customer_id == customer_id and card.is_usable(now)
        ]
        if not usable:
            return None
        return max(usable, key=lambda card: ensure_aware(card.created_at))

    def require_active(self, customer_id: str, now: datetime) -> MembershipCard:
        card = self.find_active(customer_id, now)
        if card is None:
            raise MembershipNotFoundError()
        return card

    def record_usage(
        self, card_id: str, discount_amount: float, original_amount: float, now: datetime
    ) -> MembershipCard:
        with self._lock:
            card = self._cards.get(card_id)
            if card is None:
                raise MembershipNotFoundError(f"Membership {card_id} not found")
            updated = card.model_copy(
                update={
                    "total_savings": round2(card.total_savings + discount_amount),
                    "orders_count": card.orders_count + 1,
                    "last_used_at": now,
                }
            )
            self._cards[card_id] = updated
        logger.info(
            "Membership %s saved %.2f on order of %.2f (orders: %d)",
            card_id,
            discount_amount,
            original_amount,
            updated.orders_count,
        )
        return updated
