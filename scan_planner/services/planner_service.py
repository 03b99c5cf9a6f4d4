# scan_planner/services/planner_service.py
from concurrent.futures import Future
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from scan_planner.config import config
from scan_planner.core import workflow
from scan_planner.core.aggregation import filter_rows, filter_summary, summary_totals, unique_values
from scan_planner.core.analysis import analyze_products
from scan_planner.exceptions import EditNotAllowedError, InvalidTransitionError, ValidationError
from scan_planner.logging_setup import get_logger, logger as log_manager
from scan_planner.models import (
    Cluster, ClusterStatus, PlannerMode, PlannerRow, ProductEntry, SummaryRow,
    UserRole, WorkflowAction, WorkflowEvent
)
from scan_planner.services.cluster_store import ClusterStore
from scan_planner.services.export_service import ExportService

# Set up logging
logger = get_logger(__name__)

class ScanPlannerService:
    """Planner session: one cluster store plus the current mode and role.
    
    Every mutation is checked against the workflow gate for the current
    (role, mode, status) at call time, so switching role or mode takes
    effect immediately.
    """
    
    def __init__(
        self,
        store: Optional[ClusterStore] = None,
        mode=None,
        role=None,
        exporter: Optional[ExportService] = None
    ):
        """Initialize the planner session.
        
        Args:
            store: Cluster store (a new empty store when omitted)
            mode: PlannerMode or its value (defaults to config)
            role: UserRole or its value (defaults to config)
            exporter: Export service (created on first export when omitted)
        """
        planner = config.planner_config
        self.store = store if store is not None else ClusterStore()
        self._mode = PlannerMode.from_string(mode or planner['default_mode'])
        self._role = UserRole.from_string(role or planner['default_role'])
        self._exporter = exporter
        self._history: List[WorkflowEvent] = []
    
    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------
    
    @property
    def mode(self) -> PlannerMode:
        return self._mode
    
    @property
    def role(self) -> UserRole:
        return self._role
    
    def set_mode(self, mode) -> None:
        previous = self._mode
        self._mode = PlannerMode.from_string(mode)
        logger.info(f"Planner mode {previous} -> {self._mode}")
    
    def set_role(self, role) -> None:
        previous = self._role
        self._role = UserRole.from_string(role)
        logger.info(f"Planner role {previous} -> {self._role}")
    
    @property
    def history(self) -> List[WorkflowEvent]:
        """Workflow events in the order they happened."""
        return list(self._history)
    
    @property
    def exporter(self) -> ExportService:
        if self._exporter is None:
            self._exporter = ExportService()
        return self._exporter
    
    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------
    
    def is_locked(self) -> bool:
        """Whether any cluster is in review or approved."""
        return workflow.is_plan_locked(self.store.statuses().values())
    
    def can_create(self) -> bool:
        return workflow.can_create(self._role, self.is_locked())
    
    def can_edit(self, cluster_id: str) -> bool:
        return workflow.can_edit(self._role, self._mode, self.store.get_cluster(cluster_id).status)
    
    def allowed_actions(self, cluster_id: str) -> List[WorkflowAction]:
        return workflow.allowed_actions(self._role, self._mode, self.store.get_cluster(cluster_id).status)
    
    def _require_edit(self, cluster_id: str) -> None:
        status = self.store.statuses().get(cluster_id)
        if status is None:
            # Let the store raise its NotFoundError
            self.store.get_cluster(cluster_id)
        try:
            workflow.require_edit(self._role, self._mode, status, cluster_id)
        except EditNotAllowedError as e:
            logger.warning(f"Rejected edit: {e}")
            raise
    
    # ------------------------------------------------------------------
    # Gated cluster mutations
    # ------------------------------------------------------------------
    
    def create_cluster(self, market: str, account: str, products: List[ProductEntry]) -> str:
        """Create a draft cluster.
        
        Raises:
            EditNotAllowedError: For finance, or while the plan is locked
        """
        if not self.can_create():
            reason = 'finance cannot create clusters' if self._role == UserRole.FINANCE else 'the plan is locked'
            logger.warning(f"Rejected cluster creation: {reason}")
            raise EditNotAllowedError(
                f"Cannot create a cluster: {reason}",
                code='CREATE_NOT_ALLOWED',
                details={'role': self._role.value, 'locked': self.is_locked()}
            )
        return self.store.create_cluster(market, account, products)
    
    def save_cluster(
        self,
        cluster_id: str,
        products: List[ProductEntry],
        market: Optional[str] = None,
        account: Optional[str] = None
    ) -> None:
        """Replace an existing cluster's contents."""
        self._require_edit(cluster_id)
        self.store.replace_cluster(cluster_id, products, market=market, account=account)
    
    def delete_cluster(self, cluster_id: str) -> None:
        self._require_edit(cluster_id)
        self.store.delete_cluster(cluster_id)
    
    def add_scans(self, cluster_id: str, product_name: str, weeks, scan_amount: float, growth_rate: Optional[float] = None) -> None:
        self._require_edit(cluster_id)
        self.store.add_scans(cluster_id, product_name, weeks, scan_amount, growth_rate)
    
    def update_scan_amount(self, cluster_id: str, product_index: int, scan_index: int, scan_amount: float) -> None:
        self._require_edit(cluster_id)
        self.store.update_scan_amount(cluster_id, product_index, scan_index, scan_amount)
    
    def remove_scan(self, cluster_id: str, product_index: int, scan_index: int) -> None:
        self._require_edit(cluster_id)
        self.store.remove_scan(cluster_id, product_index, scan_index)
    
    def remove_product(self, cluster_id: str, product_index: int) -> None:
        self._require_edit(cluster_id)
        self.store.remove_product(cluster_id, product_index)
    
    def set_growth_rate(self, cluster_id: str, product_index: int, growth_rate: float) -> None:
        self._require_edit(cluster_id)
        self.store.set_growth_rate(cluster_id, product_index, growth_rate)
    
    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------
    
    @staticmethod
    def _require_comment(comment: str) -> str:
        if comment is None or not str(comment).strip():
            raise ValidationError("A comment is required", code='COMMENT_REQUIRED')
        return str(comment).strip()
    
    def _transition(self, cluster_id: str, action: WorkflowAction, comment: str) -> ClusterStatus:
        comment = self._require_comment(comment)
        current = self.store.get_cluster(cluster_id).status
        
        try:
            target = workflow.next_status(action, self._role, self._mode, current)
        except InvalidTransitionError as e:
            logger.warning(f"Rejected {action} of cluster {cluster_id}: {e}")
            raise
        
        self.store.set_status(cluster_id, target)
        self._history.append(WorkflowEvent(
            cluster_id=cluster_id,
            action=action,
            from_status=current,
            to_status=target,
            role=self._role,
            mode=self._mode,
            comment=comment
        ))
        return target
    
    def publish(self, cluster_id: str, comment: str) -> ClusterStatus:
        """Publish a cluster: draft to review, or review to approved.
        
        Args:
            cluster_id: Cluster id
            comment: Required publish comment
            
        Returns:
            New ClusterStatus
            
        Raises:
            ValidationError: If the comment is empty
            InvalidTransitionError: If the gate does not allow it
        """
        return self._transition(cluster_id, WorkflowAction.PUBLISH, comment)
    
    def reject(self, cluster_id: str, comment: str) -> ClusterStatus:
        """Send a cluster in review or approved back to draft."""
        return self._transition(cluster_id, WorkflowAction.REJECT, comment)
    
    def publish_plan(self, comment: str) -> Dict[str, ClusterStatus]:
        """Publish every cluster that is not yet approved, one step each.
        
        All clusters are checked against the gate first; if any cannot be
        published, nothing changes.
        
        Returns:
            Dictionary of cluster id to new status
        """
        comment = self._require_comment(comment)
        log_info = log_manager.operation_start_log('publish_plan', {
            'role': self._role.value, 'mode': self._mode.value, 'clusters': len(self.store)
        })
        
        current = self.store.statuses()
        targets = {}
        try:
            for cluster_id, status in current.items():
                if status == ClusterStatus.APPROVED:
                    continue
                targets[cluster_id] = workflow.next_status(WorkflowAction.PUBLISH, self._role, self._mode, status)
            
            if not targets:
                raise InvalidTransitionError(
                    "Nothing to publish: every cluster is already approved or the plan is empty",
                    code='NOTHING_TO_PUBLISH'
                )
        except InvalidTransitionError as e:
            logger.warning(f"Rejected plan publish: {e}")
            log_manager.operation_end_log(log_info, success=False, result_info={'error': str(e)})
            raise
        
        self.store.set_statuses(targets)
        for cluster_id, target in targets.items():
            self._history.append(WorkflowEvent(
                cluster_id=cluster_id,
                action=WorkflowAction.PUBLISH,
                from_status=current[cluster_id],
                to_status=target,
                role=self._role,
                mode=self._mode,
                comment=comment
            ))
        
        log_manager.operation_end_log(log_info, success=True, result_info={'published': len(targets)})
        return targets
    
    def latest_comments(self) -> Dict[str, str]:
        """Most recent workflow comment per cluster."""
        comments = {}
        for event in self._history:
            comments[event.cluster_id] = event.comment
        return comments
    
    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    
    def rows(
        self,
        markets: Optional[Sequence[str]] = None,
        accounts: Optional[Sequence[str]] = None,
        products: Optional[Sequence[str]] = None
    ) -> List[PlannerRow]:
        return filter_rows(self.store.planner_rows(), markets, accounts, products)
    
    def summary(
        self,
        markets: Optional[Sequence[str]] = None,
        brands: Optional[Sequence[str]] = None
    ) -> List[SummaryRow]:
        return filter_summary(self.store.summary_rows(), markets, brands)
    
    def summary_totals(self, markets=None, brands=None) -> Dict[str, float]:
        return summary_totals(self.summary(markets, brands))
    
    def market_options(self) -> List[str]:
        return unique_values(self.store.planner_rows(), 'market')
    
    def retailer_options(self) -> List[str]:
        return unique_values(self.store.planner_rows(), 'account')
    
    def product_options(self) -> List[str]:
        return unique_values(self.store.planner_rows(), 'product')
    
    def brand_options(self) -> List[str]:
        return unique_values(self.store.summary_rows(), 'brand')
    
    def get_cluster(self, cluster_id: str) -> Cluster:
        return self.store.get_cluster(cluster_id)
    
    def analyze(self, cluster_id: str, product_index: int, scan_index: Optional[int] = None) -> Dict:
        """Financial analysis of a product (and optionally one scan) of a cluster."""
        cluster = self.store.get_cluster(cluster_id)
        analysis = analyze_products(cluster.products, product_index, scan_index, self.store.catalog)
        analysis.update({'cluster_id': cluster_id, 'market': cluster.market, 'account': cluster.account})
        return analysis
    
    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------
    
    def export_rows_csv(self, path, **filters) -> Path:
        return self.exporter.export_rows_csv(self.rows(**filters), path)
    
    def export_summary_csv(self, path, markets=None, brands=None) -> Path:
        return self.exporter.export_summary_csv(self.summary(markets, brands), path)
    
    def export_scan_plan(self, path, **filters) -> Path:
        return self.exporter.export_scan_plan(self.rows(**filters), path)
    
    def export_finance(
        self,
        path,
        fields: Optional[Sequence[str]] = None,
        markets: Optional[Sequence[str]] = None,
        retailers: Optional[Sequence[str]] = None,
        as_of: Optional[date] = None
    ) -> Path:
        return self.exporter.export_finance(
            self.store.snapshot(), path, fields=fields, markets=markets,
            retailers=retailers, comments=self.latest_comments(), as_of=as_of
        )
    
    def submit_export(self, kind: str, path, **kwargs) -> Future:
        """Run an export in the background over a snapshot of the current rows.
        
        Args:
            kind: 'csv', 'summary', 'xlsx' or 'finance'
            path: Output file
            **kwargs: Extra arguments for the finance export
            
        Returns:
            Future resolving to the written path
        """
        exporter = self.exporter
        if kind == 'csv':
            return exporter.submit(exporter.export_rows_csv, self.store.snapshot(), path)
        if kind == 'summary':
            return exporter.submit(exporter.export_summary_csv, tuple(self.store.summary_rows()), path)
        if kind == 'xlsx':
            return exporter.submit(exporter.export_scan_plan, self.store.snapshot(), path)
        if kind == 'finance':
            kwargs.setdefault('comments', self.latest_comments())
            return exporter.submit(exporter.export_finance, self.store.snapshot(), path, **kwargs)
        raise ValidationError(f"Unknown export kind: {kind}", code='UNKNOWN_EXPORT')
