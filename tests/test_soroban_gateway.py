"""Tests for the Soroban RPC gateway and ledger key helpers."""

import json

import httpx
import pytest
from stellar_sdk import Keypair
from stellar_sdk import xdr as stellar_xdr

from stellar_lifecycle.errors import ConfigurationError, TransportError
from stellar_lifecycle.ledger import keys
from stellar_lifecycle.ledger.base import ReportedStatus, SubmitStatus
from stellar_lifecycle.ledger.soroban import JsonRpcError, SorobanRpcGateway
from stellar_lifecycle.signing.base import OperationKind, SignedOperation

RPC_URL = "https://rpc.test"


def rpc_gateway(results: dict, seen: list | None = None) -> SorobanRpcGateway:
    """Gateway whose node answers each method from a dict.

    Values may be a result dict or a callable taking the params.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if seen is not None:
            seen.append(body)
        answer = results[body["method"]]
        if isinstance(answer, httpx.Response):
            return answer
        if callable(answer):
            answer = answer(body["params"])
        if "error" in answer:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **answer})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": answer})

    return SorobanRpcGateway(rpc_url=RPC_URL, transport=httpx.MockTransport(handler))


def account_entry_xdr(keypair: Keypair, sequence: int) -> str:
    """Base64 LedgerEntryData for a bare account."""
    return stellar_xdr.LedgerEntryData(
        type=stellar_xdr.LedgerEntryType.ACCOUNT,
        account=stellar_xdr.AccountEntry(
            account_id=keypair.xdr_account_id(),
            balance=stellar_xdr.Int64(10_000_000),
            seq_num=stellar_xdr.SequenceNumber(stellar_xdr.Int64(sequence)),
            num_sub_entries=stellar_xdr.Uint32(0),
            inflation_dest=None,
            flags=stellar_xdr.Uint32(0),
            home_domain=stellar_xdr.String32(b""),
            thresholds=stellar_xdr.Thresholds(b"\x01\x00\x00\x00"),
            signers=[],
            ext=stellar_xdr.AccountEntryExt(v=0),
        ),
    ).to_xdr()


class TestLedgerKeys:
    """Tests for ledger key helpers."""

    def test_contract_code_key(self, fingerprint):
        key = stellar_xdr.LedgerKey.from_xdr(keys.contract_code_key(fingerprint).to_xdr())

        assert key.type == stellar_xdr.LedgerEntryType.CONTRACT_CODE
        assert key.contract_code.hash.hash == fingerprint.digest

    def test_account_key(self):
        keypair = Keypair.random()

        key = keys.account_key(keypair.public_key)

        assert key.type == stellar_xdr.LedgerEntryType.ACCOUNT
        assert key.account.account_id == keypair.xdr_account_id()

    def test_secret_is_not_an_account(self):
        with pytest.raises(ValueError):
            keys.account_key(Keypair.random().secret)

    def test_account_sequence(self):
        entry = account_entry_xdr(Keypair.random(), 123456789012)

        assert keys.account_sequence(entry) == 123456789012

    def test_truncated_entry(self):
        entry = account_entry_xdr(Keypair.random(), 1)

        with pytest.raises(ValueError):
            keys.account_sequence(entry[:20])


class TestGetEntry:
    """Tests for contract code lookups."""

    @pytest.mark.asyncio
    async def test_present(self, fingerprint):
        seen = []
        gateway = rpc_gateway(
            {
                "getLedgerEntries": {
                    "entries": [{"key": "k", "xdr": "x", "liveUntilLedgerSeq": 1500}],
                    "latestLedger": 1000,
                }
            },
            seen,
        )

        entry = await gateway.get_entry(fingerprint)

        assert entry.present
        assert entry.expiry_sequence == 1500
        assert entry.latest_sequence == 1000
        assert seen[0]["params"]["keys"] == [keys.contract_code_key(fingerprint).to_xdr()]

    @pytest.mark.asyncio
    async def test_absent(self, fingerprint):
        gateway = rpc_gateway({"getLedgerEntries": {"entries": [], "latestLedger": 1000}})

        entry = await gateway.get_entry(fingerprint)

        assert not entry.present
        assert entry.latest_sequence == 1000

    @pytest.mark.asyncio
    async def test_http_error(self, fingerprint):
        gateway = rpc_gateway({"getLedgerEntries": httpx.Response(503, text="unavailable")})

        with pytest.raises(TransportError):
            await gateway.get_entry(fingerprint)

    @pytest.mark.asyncio
    async def test_rpc_error(self, fingerprint):
        gateway = rpc_gateway(
            {"getLedgerEntries": {"error": {"code": -32602, "message": "invalid key"}}}
        )

        with pytest.raises(JsonRpcError) as exc:
            await gateway.get_entry(fingerprint)
        assert exc.value.code == -32602

    @pytest.mark.asyncio
    async def test_network_failure(self, fingerprint):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        gateway = SorobanRpcGateway(rpc_url=RPC_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError):
            await gateway.get_entry(fingerprint)

    @pytest.mark.asyncio
    async def test_non_object_body(self, fingerprint):
        gateway = rpc_gateway({"getLedgerEntries": httpx.Response(200, json=[1, 2])})

        with pytest.raises(TransportError, match="expected an object"):
            await gateway.get_entry(fingerprint)

    @pytest.mark.asyncio
    async def test_current_sequence(self):
        gateway = rpc_gateway({"getLatestLedger": {"id": "abc", "sequence": 4242}})
        assert await gateway.get_current_sequence() == 4242


class TestGetAccount:
    """Tests for source account lookups."""

    @pytest.mark.asyncio
    async def test_found(self):
        keypair = Keypair.random()
        gateway = rpc_gateway(
            {
                "getLedgerEntries": {
                    "entries": [{"xdr": account_entry_xdr(keypair, 77)}],
                    "latestLedger": 1,
                }
            }
        )

        account = await gateway.get_account(keypair.public_key)

        assert account.address == keypair.public_key
        assert account.sequence == 77

    @pytest.mark.asyncio
    async def test_unfunded(self):
        gateway = rpc_gateway({"getLedgerEntries": {"entries": [], "latestLedger": 1}})

        with pytest.raises(ConfigurationError, match="not found"):
            await gateway.get_account(Keypair.random().public_key)

    @pytest.mark.asyncio
    async def test_invalid_address(self):
        gateway = rpc_gateway({})

        with pytest.raises(ConfigurationError):
            await gateway.get_account("not-an-address")

    @pytest.mark.parametrize("entry", [{"xdr": "AAAA"}, {"key": "k"}])
    @pytest.mark.asyncio
    async def test_unreadable_entry(self, entry):
        gateway = rpc_gateway({"getLedgerEntries": {"entries": [entry], "latestLedger": 1}})

        with pytest.raises(TransportError, match="unreadable account entry"):
            await gateway.get_account(Keypair.random().public_key)


class TestSubmitAndStatus:
    """Tests for sendTransaction/getTransaction mapping."""

    @pytest.mark.parametrize("status", ["PENDING", "DUPLICATE"])
    @pytest.mark.asyncio
    async def test_accepted(self, status):
        seen = []
        gateway = rpc_gateway({"sendTransaction": {"status": status, "hash": "ab12"}}, seen)
        operation = SignedOperation(kind=OperationKind.INSTALL, envelope="AAAA")

        receipt = await gateway.submit(operation)

        assert receipt.status == SubmitStatus.PENDING
        assert receipt.handle == "ab12"
        assert seen[0]["params"] == {"transaction": "AAAA"}

    @pytest.mark.parametrize("status", ["ERROR", "TRY_AGAIN_LATER"])
    @pytest.mark.asyncio
    async def test_refused(self, status):
        gateway = rpc_gateway(
            {"sendTransaction": {"status": status, "hash": "ab12", "errorResultXdr": "AAAAAAAA"}}
        )

        receipt = await gateway.submit("AAAA")

        assert receipt.status == SubmitStatus.REJECTED
        assert receipt.handle is None
        assert receipt.reason == "AAAAAAAA"

    @pytest.mark.asyncio
    async def test_malformed_envelope_refused(self):
        gateway = rpc_gateway(
            {"sendTransaction": {"error": {"code": -32602, "message": "invalid transaction"}}}
        )

        receipt = await gateway.submit("garbage")

        assert receipt.status == SubmitStatus.REJECTED
        assert receipt.reason == "invalid transaction"

    @pytest.mark.asyncio
    async def test_submit_network_failure_raises(self):
        gateway = rpc_gateway({"sendTransaction": httpx.Response(502)})

        with pytest.raises(TransportError):
            await gateway.submit("AAAA")

    @pytest.mark.parametrize(
        "answer,expected",
        [
            ({"status": "SUCCESS", "ledger": 10, "resultXdr": "AAA"}, ReportedStatus.SUCCESS),
            ({"status": "FAILED", "resultXdr": "BBB"}, ReportedStatus.FAILED),
            ({"status": "NOT_FOUND"}, ReportedStatus.PENDING),
        ],
    )
    @pytest.mark.asyncio
    async def test_transaction_status(self, answer, expected):
        gateway = rpc_gateway({"getTransaction": answer})

        report = await gateway.get_operation_status("ab12")

        assert report.status == expected
        if expected == ReportedStatus.FAILED:
            assert report.reason == "BBB"
