"""Append-only price ledger and the guarded catalog price update.

Each matched line goes through one ``PriceUpdateTransaction``: a savepoint
that reads the catalog row under ``FOR UPDATE``, appends the next ledger
record and writes the current price with a compare-and-swap on
``price_version``. A lost race rolls the savepoint back and retries.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendor_ledger.core.organization import OrganizationContext
from vendor_ledger.core.settings import Settings, get_settings
from vendor_ledger.db.base import as_utc, utcnow
from vendor_ledger.db.models import CatalogItem, PriceHistoryRecord, SourceKind
from vendor_ledger.repositories.catalog import CatalogItemRepository
from vendor_ledger.repositories.price_history import PriceHistoryRepository

from .exceptions import NotFoundError, PriceConflictError

logger = logging.getLogger(__name__)

PRICE_EPSILON = Decimal("0.001")
SIGNIFICANT_PERCENT = Decimal("5")
SIGNIFICANT_AMOUNT = Decimal("0.01")
WARNING_PERCENT = Decimal("15")

LATEST_INGESTED = "latest_ingested"
LATEST_EFFECTIVE = "latest_effective"


@dataclass(slots=True, frozen=True)
class PriceMove:
    """Difference between a baseline price and a newly observed one."""

    previous_price: Decimal
    new_price: Decimal

    @property
    def change_amount(self) -> Decimal:
        return self.new_price - self.previous_price

    @property
    def change_percent(self) -> Decimal:
        if self.previous_price == 0:
            return Decimal("100") if self.new_price else Decimal("0")
        return abs(self.change_amount) / self.previous_price * 100

    @property
    def direction(self) -> str:
        if self.change_amount > 0:
            return "increase"
        if self.change_amount < 0:
            return "decrease"
        return "unchanged"

    @property
    def changed(self) -> bool:
        return abs(self.change_amount) > PRICE_EPSILON

    @property
    def is_significant(self) -> bool:
        # both guards: percent alone over-reports on very cheap items
        return self.change_percent > SIGNIFICANT_PERCENT and abs(self.change_amount) > SIGNIFICANT_AMOUNT

    @property
    def severity(self) -> str:
        return "warning" if self.change_percent > WARNING_PERCENT else "info"


@dataclass(slots=True)
class PriceApplication:
    """Result of applying one observed price to the catalog."""

    catalog_item: CatalogItem
    record: PriceHistoryRecord
    baseline_price: Decimal | None
    new_price: Decimal
    overwritten: bool
    backdated: bool
    attempts: int

    @property
    def is_new_item(self) -> bool:
        return self.baseline_price is None

    @property
    def move(self) -> PriceMove | None:
        if self.baseline_price is None:
            return None
        return PriceMove(previous_price=self.baseline_price, new_price=self.new_price)

    @property
    def changed(self) -> bool:
        move = self.move
        return move is not None and move.changed


class _StaleVersion(Exception):
    """The catalog row moved between the locked read and the write."""


class PriceUpdateTransaction:
    """Read current price, append history, overwrite price: one atomic unit."""

    def __init__(
        self,
        session: Session,
        organization: OrganizationContext,
        catalog_item_id: str,
        policy: str = LATEST_INGESTED,
        max_attempts: int = 3,
    ) -> None:
        self.session = session
        self.organization = organization
        self.catalog_item_id = catalog_item_id
        self.policy = policy
        self.max_attempts = max_attempts
        self.catalog = CatalogItemRepository(session)
        self.ledger = PriceHistoryRepository(session)

    def apply(
        self,
        new_price: Decimal,
        *,
        invoice_date: date | None,
        source_kind: SourceKind,
        vendor_id: str | None = None,
        line_item_id: str | None = None,
        import_batch_id: str | None = None,
    ) -> PriceApplication:
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.session.begin_nested():
                    return self._attempt(
                        new_price,
                        attempt=attempt,
                        invoice_date=invoice_date,
                        source_kind=source_kind,
                        vendor_id=vendor_id,
                        line_item_id=line_item_id,
                        import_batch_id=import_batch_id,
                    )
            except (_StaleVersion, IntegrityError) as exc:
                logger.info(
                    "Price update for catalog item %s lost a race (attempt %d/%d): %s",
                    self.catalog_item_id,
                    attempt,
                    self.max_attempts,
                    exc.__class__.__name__,
                )
        raise PriceConflictError(
            f"Catalog item {self.catalog_item_id} price kept changing; gave up after {self.max_attempts} attempts"
        )

    def _attempt(
        self,
        new_price: Decimal,
        *,
        attempt: int,
        invoice_date: date | None,
        source_kind: SourceKind,
        vendor_id: str | None,
        line_item_id: str | None,
        import_batch_id: str | None,
    ) -> PriceApplication:
        item = self.catalog.get_for_update(self.organization, self.catalog_item_id)
        if item is None:
            raise NotFoundError(f"Catalog item {self.catalog_item_id} not found")

        last = self.ledger.latest_for_item(item.id)
        previous_price = last.price if last is not None else None
        baseline = previous_price if previous_price is not None else item.current_price

        record = PriceHistoryRecord(
            organization_id=self.organization.organization_id,
            catalog_item_id=item.id,
            vendor_id=vendor_id,
            price=new_price,
            previous_price=previous_price,
            sequence=(last.sequence + 1) if last is not None else 1,
            effective_date=self._effective_at(last),
            invoice_date=invoice_date,
            source_kind=source_kind,
            line_item_id=line_item_id,
            import_batch_id=import_batch_id,
        )
        self.session.add(record)

        backdated = (
            invoice_date is not None
            and item.price_effective_date is not None
            and invoice_date < item.price_effective_date
        )
        overwrite = self.policy == LATEST_INGESTED or not backdated
        if overwrite:
            expected_version = item.price_version
            values: dict[str, object] = {"current_price": new_price}
            if invoice_date is not None:
                values["price_effective_date"] = invoice_date
            if not self.catalog.compare_and_set_price(item, expected_version, **values):
                raise _StaleVersion(f"price_version {expected_version} is stale")

        self.session.flush()
        return PriceApplication(
            catalog_item=item,
            record=record,
            baseline_price=baseline,
            new_price=new_price,
            overwritten=overwrite,
            backdated=backdated,
            attempts=attempt,
        )

    @staticmethod
    def _effective_at(last: PriceHistoryRecord | None) -> datetime:
        now = utcnow()
        if last is None:
            return now
        # clamp so the ledger stays ordered by effective_date as well as sequence
        return max(now, as_utc(last.effective_date))


class PriceLedgerWriter:
    """Apply observed prices to catalog items through ``PriceUpdateTransaction``."""

    def __init__(
        self,
        session: Session,
        organization: OrganizationContext,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.session = session
        self.organization = organization
        self.policy = settings.price_policy
        self.max_attempts = settings.price_update_max_attempts

    def transaction(self, catalog_item_id: str) -> PriceUpdateTransaction:
        return PriceUpdateTransaction(
            self.session,
            self.organization,
            catalog_item_id,
            policy=self.policy,
            max_attempts=self.max_attempts,
        )

    def apply_price(
        self,
        catalog_item_id: str,
        new_price: Decimal,
        *,
        invoice_date: date | None,
        source_kind: SourceKind,
        vendor_id: str | None = None,
        line_item_id: str | None = None,
        import_batch_id: str | None = None,
    ) -> PriceApplication:
        return self.transaction(catalog_item_id).apply(
            new_price,
            invoice_date=invoice_date,
            source_kind=source_kind,
            vendor_id=vendor_id,
            line_item_id=line_item_id,
            import_batch_id=import_batch_id,
        )
