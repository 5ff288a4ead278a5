"""Value objects package."""
from .reconciliation import (
    ChangeClassification,
    ChangeDecision,
    ReconciliationOutcome,
    RegistrationResult,
)

__all__ = ["ChangeClassification", "ChangeDecision", "ReconciliationOutcome", "RegistrationResult"]
