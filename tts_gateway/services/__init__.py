from .credential_rotator import CredentialLease, CredentialRotator
from .orchestrator import GenerationOrchestrator, GenerationRequest, GenerationResult
from .quota_ledger import QuotaLedger, reference_day_start, same_reference_day

__all__ = [
    "CredentialLease",
    "CredentialRotator",
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationResult",
    "QuotaLedger",
    "reference_day_start",
    "same_reference_day",
]
