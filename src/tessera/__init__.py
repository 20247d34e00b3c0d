__all__ = [
    # Records
    "Endpoint",
    "EventRecord",
    "NativeCurrency",
    "PreparedCall",
    "Receipt",
    # Endpoint client
    "EndpointClient",
    "ContractArtifact",
    "load_artifact",
    # Harness
    "ConfirmationPoller",
    "EventReconciler",
    "Interaction",
    "Orchestrator",
    "Reconciliation",
    "State",
    "StateQuery",
    "fold",
    # Configuration
    "HarnessConfig",
    "Session",
    # Errors
    "ChainMismatch",
    "ConfirmationTimeout",
    "HarnessError",
    "MalformedEvent",
    "ReceiptUnavailable",
    "ReconciliationMismatch",
    "Reverted",
    "RpcError",
    "SimulationFailed",
    "SubmissionRejected",
]

from .errors import (
    ChainMismatch,
    ConfirmationTimeout,
    HarnessError,
    MalformedEvent,
    ReceiptUnavailable,
    ReconciliationMismatch,
    Reverted,
    RpcError,
    SimulationFailed,
    SubmissionRejected,
)
from .nexus.abi import ContractArtifact, load_artifact
from .nexus.models import Endpoint, EventRecord, NativeCurrency, PreparedCall, Receipt
from .nexus.rpc import EndpointClient
from .augury.events import EventReconciler, Reconciliation, StateQuery, fold
from .augury.orchestrator import Interaction, Orchestrator, State
from .augury.poller import ConfirmationPoller
from .config import HarnessConfig
from .session import Session
