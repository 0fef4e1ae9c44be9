import pytest

from conftest import BOB_ADDRESS, BOB_SECRET, make_address

from tznft import contracts
from tznft.contracts import (
    INSPECTOR_CODE_PATH,
    InspectorNotDeployedError,
    OriginationError,
    load_code,
    originate_contract,
    originate_inspector,
    query_balances,
    query_metadata,
)
from tznft.fa2 import BalanceOfRequest, TokenMetadata
from tznft.micheline import MichelsonSyntaxError, SchemaMismatchError, elt, integer, pair, right, string
from tznft.rpc_client import RPCError
from tznft.signer import InMemorySigner
from tznft.storage import NftStorage
from tznft.toolkit import Toolkit


class StubOperation:
    def __init__(self, address: str | None = None) -> None:
        self.hash = "opStub"
        self.address = address
        self.confirmed = False

    async def confirmation(self):
        self.confirmed = True
        return []

    async def contract_address(self) -> str:
        await self.confirmation()
        return self.address


class StubHandle:
    def __init__(self, *, originate_error: Exception | None = None) -> None:
        self.originate_error = originate_error
        self.originations: list[dict] = []
        self.calls: list[tuple] = []
        self.storages: dict = {}
        self.big_maps: dict = {}
        self.operations: list[StubOperation] = []

    async def public_key_hash(self) -> str:
        return BOB_ADDRESS

    async def originate(self, code, init=None, storage=None):
        self.originations.append({"code": code, "init": init, "storage": storage})
        if self.originate_error is not None:
            raise self.originate_error
        op = StubOperation(make_address("KT1", len(self.originations)))
        self.operations.append(op)
        return op

    async def call(self, contract, entrypoint, value):
        self.calls.append((contract, entrypoint, value))
        op = StubOperation()
        self.operations.append(op)
        return op

    async def storage(self, contract):
        return self.storages[contract]

    async def big_map_get(self, big_map_id, key, key_type):
        return self.big_maps.get((big_map_id, int(key["int"])))


@pytest.mark.asyncio
async def test_originate_literal_storage_is_sent_as_init() -> None:
    handle = StubHandle()

    address = await originate_inspector(handle)

    assert address == make_address("KT1", 1)
    assert handle.originations[0]["init"] == "(Left Unit)"
    assert handle.originations[0]["storage"] is None
    assert "parameter" in handle.originations[0]["code"]


@pytest.mark.asyncio
async def test_originate_structured_storage_is_sent_as_storage() -> None:
    handle = StubHandle()
    storage = NftStorage()

    await originate_contract(handle, "code", storage, "nft")

    assert handle.originations[0]["storage"] is storage
    assert handle.originations[0]["init"] is None


@pytest.mark.asyncio
async def test_rejected_origination_carries_label_without_retry() -> None:
    cause = RPCError([{"kind": "permanent", "id": "proto.alpha.michelson_v1.ill_typed_contract"}])
    handle = StubHandle(originate_error=cause)

    with pytest.raises(OriginationError) as excinfo:
        await originate_contract(handle, "code", "Unit", "inspector")

    assert excinfo.value.label == "inspector"
    assert excinfo.value.cause is cause
    assert len(handle.originations) == 1


class OfflineRPC:
    def __getattr__(self, name):
        raise AssertionError(f"unexpected RPC call {name}")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, init",
    [
        (None, "(Left Unit"),
        ("parameter unit; storage unit;", "Unit"),
    ],
)
async def test_malformed_michelson_is_reported_as_origination_failure(code, init) -> None:
    toolkit = Toolkit(OfflineRPC(), InMemorySigner(BOB_SECRET))

    with pytest.raises(OriginationError) as excinfo:
        await originate_contract(toolkit, code or load_code(INSPECTOR_CODE_PATH), init, "inspector")

    assert excinfo.value.label == "inspector"
    assert isinstance(excinfo.value.cause, MichelsonSyntaxError)


@pytest.mark.asyncio
async def test_mint_nfts_originates_collection_for_owner(config, monkeypatch) -> None:
    handle = StubHandle()
    monkeypatch.setattr(contracts, "create_toolkit", lambda _config, _owner: handle)
    tokens = [TokenMetadata(token_id=1, symbol="A", name="Alpha")]

    address = await contracts.mint_nfts(config, "bob", tokens)

    assert address == make_address("KT1", 1)
    storage = handle.originations[0]["storage"]
    assert storage.ledger == {1: BOB_ADDRESS}


@pytest.mark.asyncio
async def test_mint_nfts_requires_tokens(config) -> None:
    with pytest.raises(ValueError):
        await contracts.mint_nfts(config, "bob", [])


@pytest.mark.asyncio
async def test_query_balances_reads_inspector_state(nft_address) -> None:
    handle = StubHandle()
    inspector = make_address("KT1", 2)
    handle.storages[inspector] = right(
        [pair(pair(string(BOB_ADDRESS), integer(1)), integer(1))]
    )
    requests = [BalanceOfRequest(owner=BOB_ADDRESS, token_id=1)]

    responses = await query_balances(handle, inspector, nft_address, requests)

    assert responses[0].request == requests[0]
    assert responses[0].balance == 1
    contract, entrypoint, value = handle.calls[0]
    assert (contract, entrypoint) == (inspector, "query")
    assert value["args"][0] == string(nft_address)
    assert handle.operations[0].confirmed


@pytest.mark.asyncio
async def test_query_balances_rejects_empty_inspector_state(nft_address) -> None:
    handle = StubHandle()
    inspector = make_address("KT1", 2)
    handle.storages[inspector] = {"prim": "Left", "args": [{"prim": "Unit"}]}

    with pytest.raises(SchemaMismatchError):
        await query_balances(handle, inspector, nft_address, [])


@pytest.mark.asyncio
async def test_show_balances_requires_deployed_inspector(config, nft_address) -> None:
    with pytest.raises(InspectorNotDeployedError):
        await contracts.show_balances(config, "bob", nft_address, "alice", ["1"])


@pytest.mark.asyncio
async def test_query_metadata_reports_missing_tokens_individually(nft_address) -> None:
    handle = StubHandle()
    handle.storages[nft_address] = pair(integer(10), integer(11), integer(12))
    handle.big_maps[(12, 1)] = pair(
        integer(1),
        string("A"),
        string("Alpha"),
        integer(0),
        [elt(string("ipfs_cid"), string("QmHash"))],
    )

    results = await query_metadata(handle, nft_address, [1, 2])

    assert results[0] == (
        1,
        TokenMetadata(token_id=1, symbol="A", name="Alpha", decimals=0, extras={"ipfs_cid": "QmHash"}),
    )
    assert results[1] == (2, None)


@pytest.mark.asyncio
async def test_transfer_resolves_batch_before_calling(config, monkeypatch, nft_address) -> None:
    from tznft.batch import parse_transfers

    handle = StubHandle()
    monkeypatch.setattr(contracts, "create_toolkit", lambda _config, _signer: handle)

    await contracts.transfer(config, "bob", nft_address, parse_transfers(["bob, alice, 1"]))

    contract, entrypoint, value = handle.calls[0]
    assert (contract, entrypoint) == (nft_address, "transfer")
    assert value[0]["args"][0] == string(BOB_ADDRESS)


@pytest.mark.asyncio
async def test_update_operators_orders_adds_before_removes(config, monkeypatch, nft_address) -> None:
    handle = StubHandle()
    monkeypatch.setattr(contracts, "create_toolkit", lambda _config, _owner: handle)

    await contracts.update_operators(config, "bob", nft_address, ["alice, 1"], ["alice, 2"])

    _, entrypoint, value = handle.calls[0]
    assert entrypoint == "update_operators"
    assert [item["prim"] for item in value] == ["Left", "Right"]
