"""
Closed vocabularies stored as strings
"""
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    PLANNER = "PLANNER"
    ENGINEER = "ENGINEER"
    MARKETER = "MARKETER"
    WAREHOUSE = "WAREHOUSE"
    WORKER = "WORKER"
    VIEWER = "VIEWER"
    # Semi-finished operators, one per category
    METAL = "METAL"
    KONFEKSIYON = "KONFEKSIYON"
    AHSAP_BOYA = "AHSAP_BOYA"
    AHSAP_ISKELET = "AHSAP_ISKELET"


class ProductStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    MARKETING_REVIEW = "MARKETING_REVIEW"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"  # recorded in the audit trail; the row itself is removed


class ProductionStage(str, Enum):
    PRODUCED = "PRODUCED"
    FOAM = "FOAM"
    UPHOLSTERY = "UPHOLSTERY"
    ASSEMBLY = "ASSEMBLY"
    PACKAGED = "PACKAGED"
    STORED = "STORED"


# Stages a production operator may move directly (STORED goes through the warehouse)
STAGE_FIELDS = {
    ProductionStage.FOAM: "foam_qty",
    ProductionStage.UPHOLSTERY: "upholstery_qty",
    ProductionStage.ASSEMBLY: "assembly_qty",
    ProductionStage.PACKAGED: "packaged_qty",
}


class ShipmentStatus(str, Enum):
    PLANNED = "PLANNED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class SemiFinishedCategory(str, Enum):
    METAL = "METAL"
    KONFEKSIYON = "KONFEKSIYON"
    AHSAP_BOYA = "AHSAP_BOYA"
    AHSAP_ISKELET = "AHSAP_ISKELET"

    @property
    def operator_role(self) -> Role:
        return Role(self.value)


class SemiFinishedProductionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class StockMovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class StockLevel(str, Enum):
    OK = "OK"
    LOW = "LOW"
    OUT_OF_STOCK = "OUT_OF_STOCK"
