# scan_planner/core/workflow.py
"""Status gate for scan plan clusters.

Per cluster: draft -> review -> approved, with reject sending review or
approved back to draft. Edit permission depends on role, mode and status
and is recomputed on every call.
"""
from typing import Iterable, List

from scan_planner.exceptions import EditNotAllowedError, InvalidTransitionError
from scan_planner.models import ClusterStatus, PlannerMode, UserRole, WorkflowAction

LOCKED_STATUSES = (ClusterStatus.REVIEW, ClusterStatus.APPROVED)

def can_edit(role, mode, status) -> bool:
    """Whether a cluster can be edited.
    
    Finance never edits. Commercial edits draft clusters in budget mode
    and any cluster in forecast mode.
    
    Args:
        role: UserRole or its string value
        mode: PlannerMode or its string value
        status: ClusterStatus or its string value
        
    Returns:
        True if the cluster is editable
    """
    role = UserRole.from_string(role)
    mode = PlannerMode.from_string(mode)
    status = ClusterStatus.from_string(status)
    
    if role == UserRole.FINANCE:
        return False
    
    if mode == PlannerMode.BUDGET:
        return status == ClusterStatus.DRAFT
    
    return True

def require_edit(role, mode, status, cluster_id: str = None) -> None:
    """Raise EditNotAllowedError unless the cluster is editable."""
    if not can_edit(role, mode, status):
        label = f"Cluster {cluster_id}" if cluster_id else "Cluster"
        raise EditNotAllowedError(
            f"{label} is read-only for role={role} mode={mode} status={status}",
            code='EDIT_NOT_ALLOWED',
            details={'cluster_id': cluster_id, 'role': str(role), 'mode': str(mode), 'status': str(status)}
        )

def is_plan_locked(statuses: Iterable) -> bool:
    """A plan is locked once any cluster is in review or approved."""
    return any(ClusterStatus.from_string(s) in LOCKED_STATUSES for s in statuses)

def can_create(role, plan_locked: bool) -> bool:
    """Whether a new cluster can be added to the plan."""
    return UserRole.from_string(role) != UserRole.FINANCE and not plan_locked

def next_status(action, role, mode, status) -> ClusterStatus:
    """Compute the status a workflow action leads to.
    
    Rules:
        publish, draft -> review: any role, forecast mode only
        publish, review -> approved: finance
        reject, review/approved -> draft: finance
    
    Args:
        action: WorkflowAction or its string value
        role: UserRole or its string value
        mode: PlannerMode or its string value
        status: Current ClusterStatus or its string value
        
    Returns:
        New ClusterStatus
        
    Raises:
        InvalidTransitionError: If the action is not allowed
    """
    action = WorkflowAction.from_string(action)
    role = UserRole.from_string(role)
    mode = PlannerMode.from_string(mode)
    status = ClusterStatus.from_string(status)
    
    def reject(reason):
        return InvalidTransitionError(
            f"Cannot {action.value} a {status.value} cluster: {reason}",
            code='INVALID_TRANSITION',
            details={
                'action': action.value,
                'role': role.value,
                'mode': mode.value,
                'status': status.value
            }
        )
    
    if action == WorkflowAction.PUBLISH:
        if status == ClusterStatus.DRAFT:
            if mode != PlannerMode.FORECAST:
                raise reject("publishing a draft is not available in budget mode")
            return ClusterStatus.REVIEW
        
        if status == ClusterStatus.REVIEW:
            if role != UserRole.FINANCE:
                raise reject("only finance can approve a cluster in review")
            return ClusterStatus.APPROVED
        
        raise reject("cluster is already approved")
    
    if status not in LOCKED_STATUSES:
        raise reject("only clusters in review or approved can be rejected")
    if role != UserRole.FINANCE:
        raise reject("only finance can reject a cluster")
    return ClusterStatus.DRAFT

def allowed_actions(role, mode, status) -> List[WorkflowAction]:
    """Workflow actions available for a cluster."""
    actions = []
    for action in WorkflowAction:
        try:
            next_status(action, role, mode, status)
        except InvalidTransitionError:
            continue
        actions.append(action)
    return actions

