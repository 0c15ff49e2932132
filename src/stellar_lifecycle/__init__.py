"""On-chain resource provisioning and operation confirmation for Stellar."""

__version__ = "0.1.0"
