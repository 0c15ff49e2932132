"""Admin operation signing."""

from stellar_lifecycle.signing.base import OperationKind, OperationSigner, SignedOperation

__all__ = ["OperationKind", "OperationSigner", "SignedOperation"]
