# projections/stock.py
"""
Stock Level Projection.

Consumes stock.moved and keeps one StockLevel row per (product, warehouse).
StockMovement rows on the write side remain the authority for availability
checks; this read model serves listings and reports.
"""

from decimal import Decimal
from typing import Dict, List
import logging

from django.db.models import Sum

from accounts.models import Company
from events.models import BusinessEvent
from events.types import EventTypes
from inventory.models import Product, StockMovement, Warehouse
from projections.base import BaseProjection, projection_registry
from projections.models import StockLevel


logger = logging.getLogger(__name__)


class StockLevelProjection(BaseProjection):

    @property
    def name(self) -> str:
        return "stock_level"

    @property
    def consumes(self) -> List[str]:
        return [EventTypes.STOCK_MOVED]

    def handle(self, event: BusinessEvent) -> None:
        data = event.get_data()
        company = event.company

        try:
            product = Product.objects.get(company=company, public_id=data["product_public_id"])
            warehouse = Warehouse.objects.get(company=company, public_id=data["warehouse_public_id"])
        except (Product.DoesNotExist, Warehouse.DoesNotExist):
            raise RuntimeError(
                f"Unknown product or warehouse in stock.moved event {event.id} for {company.slug}"
            )

        level = StockLevel.objects.select_for_update().filter(
            company=company,
            product=product,
            warehouse=warehouse,
        ).first()
        if level is None:
            level = StockLevel.objects.create(company=company, product=product, warehouse=warehouse)

        if level.last_event_id == event.id:
            return

        level.quantity += Decimal(data["quantity"])
        level.last_event = event
        level.save()

    def _clear_projected_data(self, company: Company) -> None:
        StockLevel.objects.filter(company=company).delete()

    def get_quantity(self, company: Company, product, warehouse) -> Decimal:
        level = StockLevel.objects.filter(company=company, product=product, warehouse=warehouse).first()
        return level.quantity if level else Decimal("0")

    def verify(self, company: Company) -> Dict[str, object]:
        """Compare projected levels against the sum of StockMovement rows."""
        expected = {
            (row["product_id"], row["warehouse_id"]): row["total"]
            for row in StockMovement.objects.filter(company=company)
            .values("product_id", "warehouse_id")
            .annotate(total=Sum("quantity"))
        }
        mismatches = []
        verified = 0
        for level in StockLevel.objects.filter(company=company):
            key = (level.product_id, level.warehouse_id)
            if level.quantity != expected.pop(key, Decimal("0")):
                mismatches.append({"product_id": level.product_id, "warehouse_id": level.warehouse_id})
            else:
                verified += 1
        for (product_id, warehouse_id), total in expected.items():
            if total:
                mismatches.append({"product_id": product_id, "warehouse_id": warehouse_id})
        return {"verified": verified, "mismatches": mismatches}


projection_registry.register(StockLevelProjection())
