"""Sync engine for zipdeploy - deploy archives and detect drift."""

from .comparator import (
    DriftEntry,
    DriftReport,
    DriftStatus,
    FingerprintComparator,
    UploadAction,
    UploadDecision,
)
from .engine import DeployResult, SyncEngine
from .modes import UploadStrategy
from .operations import UploadOperations
from .state import (
    DeploymentPhase,
    DeploymentState,
    DeploymentStateManager,
    deploy,
    refresh,
    refresh_from_report,
    teardown,
)

__all__ = [
    "SyncEngine",
    "DeployResult",
    "UploadStrategy",
    "UploadOperations",
    "FingerprintComparator",
    "UploadAction",
    "UploadDecision",
    "DriftEntry",
    "DriftReport",
    "DriftStatus",
    "DeploymentPhase",
    "DeploymentState",
    "DeploymentStateManager",
    "deploy",
    "refresh",
    "refresh_from_report",
    "teardown",
]
