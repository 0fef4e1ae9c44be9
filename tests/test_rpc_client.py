import pytest
import requests

from tznft.rpc_client import RPCError, RPCTransportError, TezosRPCClient


class FakeResponse:
    def __init__(self, status_code: int, body=None, text: str = "") -> None:
        self.status_code = status_code
        self._body = body
        self.text = text
        self.url = "http://node/test"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class RecordingSession:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple] = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs.get("json")))
        if self.error is not None:
            raise self.error
        return self.response


def make_client(session: RecordingSession) -> TezosRPCClient:
    client = TezosRPCClient("http://node:20000/")
    client._session = session
    return client


def test_storage_is_read_in_readable_mode() -> None:
    session = RecordingSession(FakeResponse(200, {"int": "1"}))

    assert make_client(session).get_contract_storage("KT1abc") == {"int": "1"}

    method, url, body = session.calls[0]
    assert method == "POST"
    assert url == "http://node:20000/chains/main/blocks/head/context/contracts/KT1abc/storage/normalized"
    assert body == {"unparsing_mode": "Readable"}


def test_missing_big_map_key_is_none() -> None:
    session = RecordingSession(FakeResponse(404, text="Not found"))
    assert make_client(session).get_big_map_value(5, "exprabc") is None


def test_structured_error_body_raises_rpc_error() -> None:
    body = [{"kind": "temporary", "id": "proto.alpha.contract.counter_in_the_past"}]
    session = RecordingSession(FakeResponse(500, body))

    with pytest.raises(RPCError) as excinfo:
        make_client(session).get_counter("tz1abc")

    assert excinfo.value.status_code == 500
    assert excinfo.value.summary() == "proto.alpha.contract.counter_in_the_past"


def test_plain_error_body_raises_transport_error() -> None:
    session = RecordingSession(FakeResponse(502, text="Bad gateway"))

    with pytest.raises(RPCTransportError, match="HTTP 502"):
        make_client(session).get_block_header("2")


def test_connection_failure_is_wrapped() -> None:
    session = RecordingSession(error=requests.ConnectionError("refused"))

    with pytest.raises(RPCTransportError, match="providerUrl"):
        make_client(session).get_block_header()


def test_pack_data_returns_packed_hex() -> None:
    session = RecordingSession(FakeResponse(200, {"packed": "050001", "gas": "unaccounted"}))

    assert make_client(session).pack_data({"int": "1"}, {"prim": "nat"}) == "050001"
    assert session.calls[0][2] == {"data": {"int": "1"}, "type": {"prim": "nat"}}
