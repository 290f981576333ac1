"""Domain events for the VariantStock aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="VariantStock")
class VariantStockRegistered:
    """The catalog registered (or overwrote) the sellable quantity of a variant."""

    __version__ = 1

    variant_id = Identifier(required=True)
    sku = String(max_length=50)
    available = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="VariantStock")
class VariantRestocked:
    """Units were added to a variant's available quantity."""

    __version__ = 1

    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    available = Integer(required=True)
    restocked_at = DateTime(required=True)


@ordering.event(part_of="VariantStock")
class StockReserved:
    """Units were held for an order."""

    __version__ = 1

    variant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    available = Integer(required=True)
    reserved_at = DateTime(required=True)


@ordering.event(part_of="VariantStock")
class StockReleased:
    """Units held for an order were returned to the available pool."""

    __version__ = 1

    variant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    available = Integer(required=True)
    released_at = DateTime(required=True)


@ordering.event(part_of="VariantStock")
class StockCommitted:
    """Units held for an order left the warehouse with its shipment."""

    __version__ = 1

    variant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    committed_at = DateTime(required=True)
