"""Gradle build orchestration.

Drives the Gradle wrapper for app, bundle and library archive builds,
classifies known failures and retries them with linear backoff, and checks
release bundles for debug symbols.

Key classes:
    BuildInvoker            - One Gradle attempt with a deterministic command line
    RetryController         - Signature classification, retry budget and backoff
    VariantScheduler        - Sequential, fail-fast library archive variants
    SymbolPresenceValidator - Release bundle debug-symbol check
    Orchestrator            - build_app / build_bundle / build_library_archive
"""

from .errors import (
    SYMBOL_VALIDATION_ERROR_MESSAGE,
    BuildError,
    CallbackFailure,
    ClassifiedToolchainFailure,
    ProcessSpawnFailure,
    RetryBudgetExhausted,
    SymbolFailureReason,
    SymbolValidationFailure,
    UnclassifiedToolchainFailure,
)
from .invoker import BuildInvoker, InvocationResult
from .models import (
    ArtifactKind,
    AttemptRecord,
    BuildMode,
    BuildOutcome,
    BuildTarget,
    BundleManifestEntry,
    LocalToolchain,
    RemediationDecision,
    TargetArch,
    VariantPlan,
)
from .orchestrator import Orchestrator
from .retry import RetryController
from .signatures import DEFAULT_SIGNATURES, ErrorSignature, RemediationContext, classify_output
from .symbols import SymbolPresenceValidator
from .variants import VariantScheduler

__all__ = [
    # Models
    "ArtifactKind",
    "AttemptRecord",
    "BuildMode",
    "BuildOutcome",
    "BuildTarget",
    "BundleManifestEntry",
    "LocalToolchain",
    "RemediationDecision",
    "TargetArch",
    "VariantPlan",
    # Signatures
    "DEFAULT_SIGNATURES",
    "ErrorSignature",
    "RemediationContext",
    "classify_output",
    # Components
    "BuildInvoker",
    "InvocationResult",
    "RetryController",
    "VariantScheduler",
    "SymbolPresenceValidator",
    "Orchestrator",
    # Errors
    "BuildError",
    "ProcessSpawnFailure",
    "ClassifiedToolchainFailure",
    "UnclassifiedToolchainFailure",
    "RetryBudgetExhausted",
    "SymbolFailureReason",
    "SymbolValidationFailure",
    "CallbackFailure",
    "SYMBOL_VALIDATION_ERROR_MESSAGE",
]
