"""Stock ledger management: the catalog registers and restocks variants."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.stock.stock import VariantStock


@ordering.command(part_of="VariantStock")
class RegisterVariantStock:
    variant_id = Identifier(required=True)
    sku = String(max_length=50)
    available = Integer(required=True, min_value=0)


@ordering.command(part_of="VariantStock")
class RestockVariant:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command_handler(part_of=VariantStock)
class VariantStockHandler:
    @handle(RegisterVariantStock)
    def register_variant_stock(self, command):
        repo = current_domain.repository_for(VariantStock)
        try:
            stock = repo.get(command.variant_id)
            stock.set_available(command.available, sku=command.sku)
        except ObjectNotFoundError:
            stock = VariantStock.register(command.variant_id, command.available, sku=command.sku)
        repo.add(stock)
        return str(stock.variant_id)

    @handle(RestockVariant)
    def restock_variant(self, command):
        repo = current_domain.repository_for(VariantStock)
        stock = repo.get(command.variant_id)
        stock.restock(command.quantity)
        repo.add(stock)
