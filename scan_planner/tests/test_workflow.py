"""
Unit tests for the cluster status gate.
"""
import itertools
import unittest

from scan_planner.core.workflow import (
    allowed_actions,
    can_create,
    can_edit,
    is_plan_locked,
    next_status,
    require_edit
)
from scan_planner.exceptions import EditNotAllowedError, InvalidTransitionError
from scan_planner.models import ClusterStatus, PlannerMode, UserRole, WorkflowAction

EDIT_MATRIX = {
    ('commercial', 'budget', 'draft'): True,
    ('commercial', 'budget', 'review'): False,
    ('commercial', 'budget', 'approved'): False,
    ('commercial', 'forecast', 'draft'): True,
    ('commercial', 'forecast', 'review'): True,
    ('commercial', 'forecast', 'approved'): True,
    ('finance', 'budget', 'draft'): False,
    ('finance', 'budget', 'review'): False,
    ('finance', 'budget', 'approved'): False,
    ('finance', 'forecast', 'draft'): False,
    ('finance', 'forecast', 'review'): False,
    ('finance', 'forecast', 'approved'): False,
}

class TestCanEdit(unittest.TestCase):
    """Test cases for edit permissions."""
    
    def test_full_matrix(self):
        combos = itertools.product(UserRole, PlannerMode, ClusterStatus)
        for role, mode, status in combos:
            with self.subTest(role=role, mode=mode, status=status):
                expected = EDIT_MATRIX[(role.value, mode.value, status.value)]
                self.assertEqual(can_edit(role, mode, status), expected)
    
    def test_accepts_strings(self):
        self.assertTrue(can_edit('commercial', 'budget', 'draft'))
        self.assertFalse(can_edit('FINANCE', 'Forecast', 'draft'))
    
    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            can_edit('sales', 'budget', 'draft')
    
    def test_require_edit(self):
        require_edit(UserRole.COMMERCIAL, PlannerMode.BUDGET, ClusterStatus.DRAFT, 'c1')
        
        with self.assertRaises(EditNotAllowedError) as ctx:
            require_edit(UserRole.COMMERCIAL, PlannerMode.BUDGET, ClusterStatus.REVIEW, 'c1')
        
        self.assertEqual(ctx.exception.code, 'EDIT_NOT_ALLOWED')
        self.assertEqual(ctx.exception.details['cluster_id'], 'c1')
        self.assertIsInstance(ctx.exception, InvalidTransitionError)

class TestTransitions(unittest.TestCase):
    """Test cases for next_status."""
    
    def test_publish_draft_in_forecast(self):
        self.assertEqual(
            next_status('publish', 'commercial', 'forecast', 'draft'),
            ClusterStatus.REVIEW
        )
    
    def test_publish_draft_in_budget_is_rejected(self):
        with self.assertRaises(InvalidTransitionError) as ctx:
            next_status('publish', 'commercial', 'budget', 'draft')
        self.assertEqual(ctx.exception.code, 'INVALID_TRANSITION')
    
    def test_finance_can_submit_draft_in_forecast(self):
        self.assertEqual(
            next_status('publish', 'finance', 'forecast', 'draft'),
            ClusterStatus.REVIEW
        )
        with self.assertRaises(InvalidTransitionError):
            next_status('publish', 'finance', 'budget', 'draft')
    
    def test_approve_requires_finance(self):
        for mode in PlannerMode:
            self.assertEqual(
                next_status(WorkflowAction.PUBLISH, UserRole.FINANCE, mode, ClusterStatus.REVIEW),
                ClusterStatus.APPROVED
            )
        with self.assertRaises(InvalidTransitionError):
            next_status('publish', 'commercial', 'forecast', 'review')
    
    def test_publish_approved_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            next_status('publish', 'finance', 'forecast', 'approved')
    
    def test_reject(self):
        for status in ('review', 'approved'):
            self.assertEqual(next_status('reject', 'finance', 'budget', status), ClusterStatus.DRAFT)
        
        with self.assertRaises(InvalidTransitionError):
            next_status('reject', 'finance', 'budget', 'draft')
        with self.assertRaises(InvalidTransitionError):
            next_status('reject', 'commercial', 'forecast', 'review')
    
    def test_allowed_actions(self):
        self.assertEqual(allowed_actions('commercial', 'forecast', 'draft'), [WorkflowAction.PUBLISH])
        self.assertEqual(allowed_actions('commercial', 'budget', 'draft'), [])
        self.assertEqual(
            allowed_actions('finance', 'budget', 'review'),
            [WorkflowAction.PUBLISH, WorkflowAction.REJECT]
        )
        self.assertEqual(allowed_actions('finance', 'budget', 'approved'), [WorkflowAction.REJECT])

class TestPlanLock(unittest.TestCase):
    """Test cases for plan-level locking."""
    
    def test_is_plan_locked(self):
        self.assertFalse(is_plan_locked([]))
        self.assertFalse(is_plan_locked(['draft', ClusterStatus.DRAFT]))
        self.assertTrue(is_plan_locked(['draft', 'review']))
        self.assertTrue(is_plan_locked([ClusterStatus.APPROVED]))
    
    def test_can_create(self):
        self.assertTrue(can_create('commercial', False))
        self.assertFalse(can_create('commercial', True))
        self.assertFalse(can_create('finance', False))

if __name__ == '__main__':
    unittest.main()
