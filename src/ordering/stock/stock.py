"""VariantStock aggregate: the sellable quantity of one product variant.

``available`` only moves through two operations:

    reserve(order_id, n)        available -= n, records an active reservation
    release_for_order(order_id) available += held, drops the reservations

Reservations live only while an order can still be cancelled. Shipping an
order commits its reservations with ``commit_for_order``, which drops them
without returning units. Releases and commits are keyed by order, so running
either twice for the same order touches the units once. ``available`` can
never drop below zero.
"""

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.stock.events import (
    StockCommitted,
    StockReleased,
    StockReserved,
    VariantRestocked,
    VariantStockRegistered,
)
from ordering.utils.clock import utcnow


@ordering.entity(part_of="VariantStock")
class StockReservation:
    order_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reserved_at = DateTime(required=True)


@ordering.aggregate
class VariantStock:
    variant_id = Identifier(identifier=True)
    sku = String(max_length=50)
    available = Integer(default=0)
    reservations = HasMany(StockReservation)
    updated_at = DateTime()

    @invariant.post
    def available_stock_is_never_negative(self):
        if self.available is not None and self.available < 0:
            raise ValidationError({"available": ["Available stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, variant_id, available, sku=None):
        if available < 0:
            raise ValidationError({"available": ["Available stock cannot be negative"]})

        now = utcnow()
        stock = cls(variant_id=variant_id, sku=sku, available=available, updated_at=now)
        stock.raise_(
            VariantStockRegistered(
                variant_id=str(variant_id),
                sku=sku,
                available=available,
                registered_at=now,
            )
        )
        return stock

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def active_reservations_for(self, order_id):
        return [r for r in self.reservations if str(r.order_id) == str(order_id)]

    def reserved_units(self):
        return sum(r.quantity for r in self.reservations)

    def can_reserve(self, quantity):
        return quantity <= self.available

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def set_available(self, available, sku=None):
        """Overwrite the sellable quantity, as reported by the catalog."""
        if available < 0:
            raise ValidationError({"available": ["Available stock cannot be negative"]})

        now = utcnow()
        with atomic_change(self):
            self.available = available
            if sku:
                self.sku = sku
            self.updated_at = now

        self.raise_(
            VariantStockRegistered(
                variant_id=str(self.variant_id),
                sku=self.sku,
                available=available,
                registered_at=now,
            )
        )

    def restock(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Restock quantity must be positive"]})

        now = utcnow()
        with atomic_change(self):
            self.available += quantity
            self.updated_at = now

        self.raise_(
            VariantRestocked(
                variant_id=str(self.variant_id),
                quantity=quantity,
                available=self.available,
                restocked_at=now,
            )
        )

    def reserve(self, order_id, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Reserved quantity must be positive"]})
        if not self.can_reserve(quantity):
            raise InsufficientStock(self.variant_id, quantity, self.available)

        now = utcnow()
        with atomic_change(self):
            self.available -= quantity
            self.add_reservations(
                StockReservation(
                    order_id=order_id,
                    quantity=quantity,
                    reserved_at=now,
                )
            )
            self.updated_at = now

        self.raise_(
            StockReserved(
                variant_id=str(self.variant_id),
                order_id=str(order_id),
                quantity=quantity,
                available=self.available,
                reserved_at=now,
            )
        )

    def release_for_order(self, order_id):
        """Return every unit held for ``order_id``. Returns the number of units released."""
        held = self.active_reservations_for(order_id)
        if not held:
            return 0

        now = utcnow()
        released = sum(r.quantity for r in held)
        with atomic_change(self):
            for reservation in held:
                self.remove_reservations(reservation)
            self.available += released
            self.updated_at = now

        self.raise_(
            StockReleased(
                variant_id=str(self.variant_id),
                order_id=str(order_id),
                quantity=released,
                available=self.available,
                released_at=now,
            )
        )
        return released

    def commit_for_order(self, order_id):
        """Settle the units held for a shipped order. Returns the number of units committed."""
        held = self.active_reservations_for(order_id)
        if not held:
            return 0

        now = utcnow()
        committed = sum(r.quantity for r in held)
        with atomic_change(self):
            for reservation in held:
                self.remove_reservations(reservation)
            self.updated_at = now

        self.raise_(
            StockCommitted(
                variant_id=str(self.variant_id),
                order_id=str(order_id),
                quantity=committed,
                committed_at=now,
            )
        )
        return committed
