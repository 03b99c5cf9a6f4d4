# scan_planner/services/cluster_store.py
import copy
import uuid
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from scan_planner.core.aggregation import aggregate
from scan_planner.core.materializer import build_rows
from scan_planner.core.metrics import generate_nielsen_trend
from scan_planner.core.projection import fill_placeholder_metrics, price_scan, reproject_scan
from scan_planner.exceptions import (
    DuplicateScanWeekError, NotFoundError, ValidationError
)
from scan_planner.logging_setup import get_logger
from scan_planner.models import (
    Cluster, ClusterStatus, PlannerRow, ProductEntry, ProductReference, ScanEvent, SummaryRow
)
from scan_planner.utils.date_utils import parse_week, try_parse_week, week_key
from scan_planner.utils.validation import (
    ensure_valid_cluster, validate_scan_amount
)

# Set up logging
logger = get_logger(__name__)

class ClusterStore:
    """In-memory store of scan plan clusters.
    
    The store exclusively owns its clusters: inputs are copied on the way
    in and clusters are copied on the way out. Planner rows are cached per
    cluster and summary rows for the whole store; every mutation drops the
    affected caches before returning.
    """
    
    def __init__(
        self,
        catalog: Optional[Mapping[str, ProductReference]] = None,
        rng=None
    ):
        """Initialize the cluster store.
        
        Args:
            catalog: Optional catalog mapping used for projections
            rng: Optional numpy Generator for trends and placeholder metrics
        """
        self.catalog = catalog
        self.rng = rng
        self._clusters: Dict[str, Cluster] = {}
        self._row_cache: Dict[str, List[PlannerRow]] = {}
        self._summary_cache: Optional[List[SummaryRow]] = None
        self._version = 0
    
    @property
    def version(self) -> int:
        """Counter bumped by every mutation."""
        return self._version
    
    def __len__(self) -> int:
        return len(self._clusters)
    
    def __contains__(self, cluster_id) -> bool:
        return cluster_id in self._clusters
    
    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    
    @staticmethod
    def _new_cluster_id() -> str:
        return f"cluster-{uuid.uuid4().hex[:12]}"
    
    def _get(self, cluster_id: str) -> Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise NotFoundError(f"Cluster {cluster_id} not found", code='CLUSTER_NOT_FOUND')
        return cluster
    
    def _invalidate(self, *cluster_ids: str) -> None:
        for cluster_id in cluster_ids:
            self._row_cache.pop(cluster_id, None)
        self._summary_cache = None
        self._version += 1
    
    def _ensure_trend(self, product: ProductEntry) -> None:
        # Generated once; an existing trend is never replaced
        if product.trend is None:
            product.trend = generate_nielsen_trend(self.rng)
    
    def _price(self, product: ProductEntry, scan: ScanEvent) -> ScanEvent:
        """Cache projection and placeholder metrics on a scan that can be priced.
        
        Projections are recomputed on every write so they follow the current
        amount and growth rate; placeholder metrics are only filled when missing.
        """
        if try_parse_week(scan.week) is None or validate_scan_amount(scan.scan_amount):
            return scan
        return fill_placeholder_metrics(reproject_scan(product, scan, self.catalog), self.rng)
    
    @staticmethod
    def _parse_growth_rate(growth_rate) -> float:
        try:
            return float(growth_rate or 0.0)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid growth rate: {growth_rate!r}", code='INVALID_GROWTH_RATE')
    
    def _prepare_products(
        self,
        products: Iterable[ProductEntry],
        existing: Optional[List[ProductEntry]] = None
    ) -> List[ProductEntry]:
        prepared = copy.deepcopy(list(products))
        # Products already in the cluster keep their cached trend
        trends = {p.name: p.trend for p in existing or [] if p.trend is not None}
        for product in prepared:
            product.growth_rate = self._parse_growth_rate(product.growth_rate)
            if product.trend is None and product.name in trends:
                product.trend = copy.deepcopy(trends[product.name])
            self._ensure_trend(product)
            product.scans = [self._price(product, scan) for scan in product.scans]
        return prepared
    
    @staticmethod
    def _product_at(cluster: Cluster, product_index: int) -> ProductEntry:
        if product_index < 0 or product_index >= len(cluster.products):
            raise NotFoundError(
                f"Cluster {cluster.cluster_id} has no product at index {product_index}",
                code='PRODUCT_NOT_FOUND'
            )
        return cluster.products[product_index]
    
    @staticmethod
    def _sort_scans(scans: List[ScanEvent]) -> List[ScanEvent]:
        # Unparseable weeks go last, keeping their relative order
        return sorted(
            scans,
            key=lambda s: (try_parse_week(s.week) is None, try_parse_week(s.week) or date.min)
        )
    
    def _commit(self, cluster: Cluster) -> None:
        ensure_valid_cluster(cluster.market, cluster.account, cluster.products)
        self._clusters[cluster.cluster_id] = cluster
        self._invalidate(cluster.cluster_id)
    
    # ------------------------------------------------------------------
    # Cluster operations
    # ------------------------------------------------------------------
    
    def create_cluster(
        self,
        market: str,
        account: str,
        products: List[ProductEntry],
        cluster_id: Optional[str] = None,
        status=ClusterStatus.DRAFT
    ) -> str:
        """Create a cluster.
        
        Args:
            market: Market name
            account: Account (retailer) name
            products: Product entries, each with at least one scan
            cluster_id: Optional id (generated when omitted)
            status: Initial status
            
        Returns:
            Cluster id
            
        Raises:
            ValidationError: If market/account is empty, there are no
                products or a product has no scans
            DuplicateScanWeekError: If a product has two scans in one week
        """
        ensure_valid_cluster(market, account, products)
        
        cluster_id = cluster_id or self._new_cluster_id()
        if cluster_id in self._clusters:
            raise ValidationError(f"Cluster {cluster_id} already exists", code='DUPLICATE_CLUSTER')
        
        cluster = Cluster(
            cluster_id=cluster_id,
            market=market.strip(),
            account=account.strip(),
            products=self._prepare_products(products),
            status=self._coerce_status(status)
        )
        self._commit(cluster)
        
        logger.info(
            f"Created cluster {cluster_id} ({cluster.market} / {cluster.account}) "
            f"with {len(cluster.products)} products and {cluster.scan_count} scans"
        )
        return cluster_id
    
    def replace_cluster(
        self,
        cluster_id: str,
        products: List[ProductEntry],
        market: Optional[str] = None,
        account: Optional[str] = None
    ) -> None:
        """Replace a cluster's products (and optionally market/account).
        
        The replace is all-or-nothing: invalid input leaves the stored
        cluster untouched. All planner rows of the cluster are re-derived.
        """
        current = self._get(cluster_id)
        market = current.market if market is None else market
        account = current.account if account is None else account
        
        ensure_valid_cluster(market, account, products)
        
        cluster = Cluster(
            cluster_id=cluster_id,
            market=market.strip(),
            account=account.strip(),
            products=self._prepare_products(products, current.products),
            status=current.status
        )
        self._commit(cluster)
        
        logger.info(f"Replaced cluster {cluster_id}: {len(cluster.products)} products, {cluster.scan_count} scans")
    
    def delete_cluster(self, cluster_id: str) -> None:
        """Delete a cluster and its derived rows."""
        self._get(cluster_id)
        del self._clusters[cluster_id]
        self._invalidate(cluster_id)
        logger.info(f"Deleted cluster {cluster_id}")
    
    @staticmethod
    def _coerce_status(status) -> ClusterStatus:
        try:
            return ClusterStatus.from_string(status)
        except ValueError as e:
            raise ValidationError(str(e), code='INVALID_STATUS', details={'status': str(status)})
    
    def set_status(self, cluster_id: str, status) -> None:
        """Set a cluster's status.
        
        Only checks that the status is a known value; workflow rules are
        applied by the caller through the workflow gate.
        """
        self.set_statuses({cluster_id: status})
    
    def set_statuses(self, statuses: Mapping[str, object]) -> None:
        """Set several cluster statuses at once; nothing changes if any id or status is invalid."""
        resolved = {}
        for cluster_id, status in statuses.items():
            self._get(cluster_id)
            resolved[cluster_id] = self._coerce_status(status)
        
        for cluster_id, status in resolved.items():
            cluster = self._clusters[cluster_id]
            previous = cluster.status
            cluster.status = status
            logger.info(f"Cluster {cluster_id} status {previous.value} -> {status.value}")
        
        if resolved:
            self._invalidate(*resolved.keys())
    
    def replace_all(self, clusters: Iterable[Cluster]) -> None:
        """Replace the whole store contents with the given clusters."""
        prepared: Dict[str, Cluster] = {}
        for cluster in clusters:
            ensure_valid_cluster(cluster.market, cluster.account, cluster.products)
            cluster_id = cluster.cluster_id or self._new_cluster_id()
            if cluster_id in prepared:
                raise ValidationError(f"Cluster {cluster_id} appears more than once", code='DUPLICATE_CLUSTER')
            prepared[cluster_id] = Cluster(
                cluster_id=cluster_id,
                market=cluster.market.strip(),
                account=cluster.account.strip(),
                products=self._prepare_products(cluster.products),
                status=self._coerce_status(cluster.status)
            )
        
        previous_ids = list(self._clusters)
        self._clusters = prepared
        self._row_cache.clear()
        self._invalidate(*previous_ids)
        logger.info(f"Replaced store contents: {len(previous_ids)} clusters -> {len(prepared)} clusters")
    
    # ------------------------------------------------------------------
    # Scan operations
    # ------------------------------------------------------------------
    
    def add_scans(
        self,
        cluster_id: str,
        product_name: str,
        weeks: Iterable,
        scan_amount: float,
        growth_rate: Optional[float] = None
    ) -> None:
        """Add scans for a product, one per week, at the same amount.
        
        The product is added to the cluster if it is not there yet. Scans
        are kept sorted by week.
        
        Raises:
            ValidationError: If the amount is not positive or no weeks are given
            InvalidDateError: If a week does not parse
            DuplicateScanWeekError: If a week is already used by the product
        """
        amount_error = validate_scan_amount(scan_amount)
        if amount_error:
            raise ValidationError(amount_error, code='INVALID_SCAN_AMOUNT', details={'scan_amount': scan_amount})
        
        weeks = list(weeks)
        if not weeks:
            raise ValidationError("At least one week is required", code='NO_WEEKS')
        
        for week in weeks:
            parse_week(week)
        
        cluster = self._get(cluster_id).copy()
        product = next((p for p in cluster.products if p.name == product_name), None)
        if product is None:
            product = ProductEntry(name=product_name, growth_rate=float(growth_rate or 0.0))
            cluster.products.append(product)
        elif growth_rate is not None:
            raise ValidationError(
                f"Product '{product_name}' is already in the cluster; use set_growth_rate",
                code='PRODUCT_EXISTS'
            )
        
        used = {week_key(s.week) for s in product.scans}
        new_keys = [week_key(w) for w in weeks]
        duplicates = sorted({k for k in new_keys if k in used} | {k for k in new_keys if new_keys.count(k) > 1})
        if duplicates:
            raise DuplicateScanWeekError(
                f"Product '{product_name}' already has a scan in week(s): {', '.join(duplicates)}",
                code='DUPLICATE_SCAN_WEEK',
                details={'cluster_id': cluster_id, 'product': product_name, 'weeks': duplicates}
            )
        
        self._ensure_trend(product)
        new_scans = [price_scan(product, week, scan_amount, self.rng, self.catalog) for week in weeks]
        product.scans = self._sort_scans(product.scans + new_scans)
        
        self._commit(cluster)
        logger.info(f"Added {len(new_scans)} scans at ${float(scan_amount):.2f} for '{product_name}' in cluster {cluster_id}")
    
    def update_scan_amount(self, cluster_id: str, product_index: int, scan_index: int, scan_amount: float) -> None:
        """Change a scan's amount and re-project it."""
        amount_error = validate_scan_amount(scan_amount)
        if amount_error:
            raise ValidationError(amount_error, code='INVALID_SCAN_AMOUNT', details={'scan_amount': scan_amount})
        
        cluster = self._get(cluster_id).copy()
        product = self._product_at(cluster, product_index)
        if scan_index < 0 or scan_index >= len(product.scans):
            raise NotFoundError(
                f"Product '{product.name}' has no scan at index {scan_index}",
                code='SCAN_NOT_FOUND'
            )
        
        scan = product.scans[scan_index]
        scan.scan_amount = float(scan_amount)
        product.scans[scan_index] = self._price(product, scan)
        
        self._commit(cluster)
        logger.info(f"Updated scan {scan.week} of '{product.name}' in cluster {cluster_id} to ${float(scan_amount):.2f}")
    
    def remove_scan(self, cluster_id: str, product_index: int, scan_index: int) -> None:
        """Remove a scan; a product left without scans is removed too.
        
        Raises:
            ValidationError: If this would leave the cluster with no products
        """
        cluster = self._get(cluster_id).copy()
        product = self._product_at(cluster, product_index)
        if scan_index < 0 or scan_index >= len(product.scans):
            raise NotFoundError(
                f"Product '{product.name}' has no scan at index {scan_index}",
                code='SCAN_NOT_FOUND'
            )
        
        removed = product.scans.pop(scan_index)
        if not product.scans:
            cluster.products.pop(product_index)
        
        self._commit(cluster)
        logger.info(f"Removed scan {removed.week} of '{product.name}' from cluster {cluster_id}")
    
    def remove_product(self, cluster_id: str, product_index: int) -> None:
        """Remove a product and all its scans from a cluster.

        Raises:
            ValidationError: If this would leave the cluster with no products
        """
        cluster = self._get(cluster_id).copy()
        product = self._product_at(cluster, product_index)
        cluster.products.pop(product_index)

        self._commit(cluster)
        logger.info(f"Removed product '{product.name}' ({len(product.scans)} scans) from cluster {cluster_id}")

    def set_growth_rate(self, cluster_id: str, product_index: int, growth_rate: float) -> None:
        """Set a product's growth rate and re-project its scans."""
        growth_rate = self._parse_growth_rate(growth_rate)
        
        cluster = self._get(cluster_id).copy()
        product = self._product_at(cluster, product_index)
        product.growth_rate = growth_rate
        product.scans = [self._price(product, scan) for scan in product.scans]
        
        self._commit(cluster)
        logger.info(f"Set growth rate of '{product.name}' in cluster {cluster_id} to {growth_rate:.2%}")
    
    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    
    def get_cluster(self, cluster_id: str) -> Cluster:
        """Get a copy of a cluster."""
        return self._get(cluster_id).copy()
    
    def list_clusters(self) -> List[Cluster]:
        """Copies of all clusters in insertion order."""
        return [c.copy() for c in self._clusters.values()]
    
    def cluster_ids(self) -> List[str]:
        return list(self._clusters)
    
    def statuses(self) -> Dict[str, ClusterStatus]:
        return {cid: c.status for cid, c in self._clusters.items()}
    
    def planner_rows(self, cluster_id: Optional[str] = None) -> List[PlannerRow]:
        """Planner rows for one cluster or the whole store."""
        cluster_ids = [cluster_id] if cluster_id is not None else list(self._clusters)
        
        rows = []
        for cid in cluster_ids:
            if cid not in self._row_cache:
                self._row_cache[cid] = build_rows(self._get(cid), self.catalog)
            rows.extend(self._row_cache[cid])
        return rows
    
    def summary_rows(self) -> List[SummaryRow]:
        """Market x brand summary of all planner rows."""
        if self._summary_cache is None:
            self._summary_cache = aggregate(self.planner_rows())
        return copy.deepcopy(self._summary_cache)
    
    def snapshot(self) -> tuple:
        """Immutable snapshot of all planner rows, e.g. for a background export."""
        return tuple(self.planner_rows())
