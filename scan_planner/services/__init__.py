from .cluster_store import ClusterStore
from .export_service import ExportService
from .planner_service import ScanPlannerService

__all__ = [
    'ClusterStore',
    'ExportService',
    'ScanPlannerService'
]
