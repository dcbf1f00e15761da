from .brewing import Recipe, RecipeIngredient, Vessel, Batch, VesselStatus, RecipeStatus, UsageStage
from .inventory import Supplier, InventoryItem, InventoryLot, StockMovement, MovementType, Unit, ItemCategory
from .purchasing import PurchaseOrder, PurchaseOrderLine
from .orders import Customer, Order, OrderLine
from .packaging import PackagingRun, FinishedGoods, PackageFormat
from .documents import DocumentSequence
from .readings import FermentationLogEntry, BatchMeasurement
from .quality import QualityCheck, QualityCheckType, QualityResult

__all__ = [
    'Recipe', 'RecipeIngredient', 'Vessel', 'Batch',
    'VesselStatus', 'RecipeStatus', 'UsageStage',
    'Supplier', 'InventoryItem', 'InventoryLot', 'StockMovement',
    'MovementType', 'Unit', 'ItemCategory',
    'PurchaseOrder', 'PurchaseOrderLine',
    'Customer', 'Order', 'OrderLine',
    'PackagingRun', 'FinishedGoods', 'PackageFormat',
    'DocumentSequence',
    'FermentationLogEntry', 'BatchMeasurement',
    'QualityCheck', 'QualityCheckType', 'QualityResult',
]
