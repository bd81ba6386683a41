from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import date, datetime, time, timedelta
from typing import Dict, Any, List

from prodtrack.models import Product, ProductionLog, Shipment, SemiFinished
from prodtrack.models.enums import ProductStatus, ProductionStage, ShipmentStatus, StockLevel
from .semi_finished_service import SemiFinishedService


class ReportService:

    @staticmethod
    def dashboard_stats(db: Session) -> Dict[str, Any]:
        """Product counts per status plus a few headline figures"""
        rows = db.query(Product.status, func.count(Product.id)).group_by(Product.status).all()
        by_status = {s.value: 0 for s in ProductStatus if s != ProductStatus.CANCELLED}
        for status, count in rows:
            by_status[status] = count

        totals = db.query(
            func.coalesce(func.sum(Product.quantity), 0),
            func.coalesce(func.sum(Product.produced), 0),
            func.coalesce(func.sum(Product.stored_qty), 0)
        ).one()

        low_stock = [
            item for item in SemiFinishedService.list_items(db)
            if item["level"] != StockLevel.OK.value
        ]

        return {
            "by_status": by_status,
            "total_products": sum(by_status.values()),
            "ordered_units": int(totals[0]),
            "produced_units": int(totals[1]),
            "stored_units": int(totals[2]),
            "planned_shipments": db.query(Shipment).filter(
                Shipment.status == ShipmentStatus.PLANNED.value
            ).count(),
            "semi_finished_items": db.query(SemiFinished).count(),
            "low_stock_items": len(low_stock),
        }

    @staticmethod
    def production_history(db: Session, weeks: int = 8, today: date = None) -> List[Dict[str, Any]]:
        """
        Weekly produced units for the last `weeks` weeks (Monday-based),
        oldest first. Weeks without production report zero.
        """
        weeks = max(1, min(weeks, 52))
        today = today or date.today()
        current_monday = today - timedelta(days=today.weekday())
        first_monday = current_monday - timedelta(weeks=weeks - 1)

        logs = db.query(ProductionLog.created_at, ProductionLog.quantity).filter(
            ProductionLog.stage == ProductionStage.PRODUCED.value,
            ProductionLog.created_at >= datetime.combine(first_monday, time.min)
        ).all()

        buckets = {first_monday + timedelta(weeks=i): 0 for i in range(weeks)}
        for created_at, quantity in logs:
            day = created_at.date()
            monday = day - timedelta(days=day.weekday())
            if monday in buckets:
                buckets[monday] += quantity

        return [
            {
                "week_start": monday,
                "week": f"{monday.isocalendar()[0]}-W{monday.isocalendar()[1]:02d}",
                "produced": total,
            }
            for monday, total in sorted(buckets.items())
        ]
