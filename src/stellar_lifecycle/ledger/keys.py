"""Ledger keys and entry decoding on top of stellar-sdk's XDR types."""

from stellar_sdk import Keypair
from stellar_sdk import xdr as stellar_xdr

from stellar_lifecycle.fingerprint import ResourceFingerprint


def contract_code_key(fingerprint: ResourceFingerprint) -> stellar_xdr.LedgerKey:
    """LedgerKey of the CONTRACT_CODE entry for a code hash."""
    return stellar_xdr.LedgerKey(
        type=stellar_xdr.LedgerEntryType.CONTRACT_CODE,
        contract_code=stellar_xdr.LedgerKeyContractCode(hash=stellar_xdr.Hash(fingerprint.digest)),
    )


def account_key(address: str) -> stellar_xdr.LedgerKey:
    """LedgerKey of an ACCOUNT entry.

    Raises:
        Ed25519PublicKeyInvalidError: address is not a G... strkey
    """
    account_id = Keypair.from_public_key(address).xdr_account_id()
    return stellar_xdr.LedgerKey(
        type=stellar_xdr.LedgerEntryType.ACCOUNT,
        account=stellar_xdr.LedgerKeyAccount(account_id=account_id),
    )


def account_sequence(entry_xdr: str) -> int:
    """Sequence number from a base64 LedgerEntryData holding an AccountEntry.

    Raises:
        ValueError: Not decodable, or not an account entry
    """
    try:
        data = stellar_xdr.LedgerEntryData.from_xdr(entry_xdr)
    except EOFError as e:
        raise ValueError("Ledger entry XDR is truncated") from e

    if data.type != stellar_xdr.LedgerEntryType.ACCOUNT or data.account is None:
        raise ValueError(f"Not an account entry ({data.type.name})")
    return data.account.seq_num.sequence_number.int64
