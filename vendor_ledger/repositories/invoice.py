"""Invoice header and line item repositories."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, func, select

from vendor_ledger.db.models import InvoiceHeader, LineItem
from vendor_ledger.services.price_ledger import PRICE_EPSILON

from .base import OrganizationScopedRepository


@dataclass(slots=True, frozen=True)
class LineItemAggregates:
    item_count: int
    price_change_count: int
    new_item_count: int


class InvoiceHeaderRepository(OrganizationScopedRepository[InvoiceHeader]):
    model = InvoiceHeader

    def get_for_batch(self, import_batch_id: str) -> InvoiceHeader | None:
        statement = self._base_query().where(self.model.import_batch_id == import_batch_id)
        return self.session.scalar(statement)


class LineItemRepository(OrganizationScopedRepository[LineItem]):
    """Line item persistence and the aggregates computed over committed rows."""

    model = LineItem

    def aggregates_for_header(self, invoice_header_id: str) -> LineItemAggregates:
        price_delta = func.abs(self.model.unit_price - self.model.previous_unit_price)
        statement = select(
            func.count(self.model.id),
            func.sum(
                case(
                    (self.model.previous_unit_price.is_not(None) & (price_delta > float(PRICE_EPSILON)), 1),
                    else_=0,
                )
            ),
            func.sum(case((self.model.previous_unit_price.is_(None), 1), else_=0)),
        ).where(self.model.invoice_header_id == invoice_header_id)
        item_count, changed, new_items = self.session.execute(statement).one()
        return LineItemAggregates(
            item_count=int(item_count or 0),
            price_change_count=int(changed or 0),
            new_item_count=int(new_items or 0),
        )
