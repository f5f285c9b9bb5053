"""
Services package for the EPG reconciler

This package contains all business logic and service layer components.
"""
from epg_reconciler.services.reconciliation_service import (
    IdentityRegistry,
    IntervalIndex,
    reconcile_channel,
    reconcile_channels,
)
from epg_reconciler.services.reconcile_pipeline_service import ReconcilePipeline, run_reconciliation
from epg_reconciler.services.run_coordinator import RunCoordinator
from epg_reconciler.services.scheduler_service import ReconcileScheduler
from epg_reconciler.services.xmltv_parser_service import parse_xmltv_file

__all__ = [
    'IdentityRegistry',
    'IntervalIndex',
    'ReconcilePipeline',
    'ReconcileScheduler',
    'RunCoordinator',
    'parse_xmltv_file',
    'reconcile_channel',
    'reconcile_channels',
    'run_reconciliation',
]
