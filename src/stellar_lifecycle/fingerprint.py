"""Content-derived identity for installable contract code."""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ResourceFingerprint:
    """SHA-256 of a resource's exact bytes.

    Equality is byte equality of the digest. The hex form is lowercase and is
    what gets logged and used as a lock key.
    """

    digest: bytes

    def __post_init__(self):
        if len(self.digest) != 32:
            raise ValueError(f"Fingerprint must be 32 bytes, got {len(self.digest)}")

    @classmethod
    def compute(cls, resource_bytes: bytes) -> "ResourceFingerprint":
        """Hash resource bytes. Same bytes always give the same fingerprint."""
        return cls(hashlib.sha256(resource_bytes).digest())

    @classmethod
    def from_hex(cls, value: str) -> "ResourceFingerprint":
        value = value.strip().lower()
        if value.startswith("0x"):
            value = value[2:]
        return cls(bytes.fromhex(value))

    @classmethod
    def from_file(cls, path: str | Path) -> "ResourceFingerprint":
        return cls.compute(Path(path).read_bytes())

    @property
    def hex(self) -> str:
        return self.digest.hex()

    @property
    def short(self) -> str:
        """Prefix for log lines."""
        return self.hex[:16]

    def __str__(self) -> str:
        return self.hex

    def __repr__(self) -> str:
        return f"ResourceFingerprint({self.short}...)"


@dataclass(frozen=True)
class ManagedResource:
    """The contract code this service keeps alive.

    content is None when only the expected hash is known (status reads work,
    installs do not).
    """

    fingerprint: ResourceFingerprint
    content: Optional[bytes] = None


def load_managed_resource(path: str | Path, expected_hex: Optional[str] = None) -> ManagedResource:
    """Read the resource file, falling back to the expected hash alone.

    Raises:
        ValueError: File content does not match expected_hex
        FileNotFoundError: No file and no expected hash
    """
    expected = ResourceFingerprint.from_hex(expected_hex) if expected_hex else None
    path = Path(path)

    if not path.exists():
        if expected is None:
            raise FileNotFoundError(f"Resource file not found: {path}")
        return ManagedResource(fingerprint=expected)

    content = path.read_bytes()
    fingerprint = ResourceFingerprint.compute(content)
    if expected is not None and expected != fingerprint:
        raise ValueError(
            f"Resource file {path} hashes to {fingerprint.hex}, expected {expected.hex}"
        )
    return ManagedResource(fingerprint=fingerprint, content=content)
