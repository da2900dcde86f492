from __future__ import annotations
import json, httpx
from typing import Any, Sequence
from ..domain.decoding import normalize_topic0
from ..domain.errors import ParseError, RPCError, TransportError
from ..domain.value_types import Address, Topic0
from ..ports.rpc import RPCClient, RpcCall

def _to_hex_block(n: int) -> str: return hex(int(n))

def _build_topics_param(topic0s: Sequence[Topic0]) -> list[list[str]]:
    return [[normalize_topic0(t) for t in topic0s]]

def _rpc_error(err: Any) -> RPCError:
    if isinstance(err, dict):
        return RPCError(err.get("code"), str(err.get("message")))
    return RPCError(None, str(err))

class HttpxRPC(RPCClient):
    """
    JSON-RPC over one pooled httpx client. No retries: every failure is
    surfaced once, a batch fails as a unit.
    """
    def __init__(
        self,
        rpc_url: str,
        timeout_s: int = 20,
        max_conn: int = 64,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.AsyncClient(
            http2=True,
            # waiting for a pooled connection is queueing, not a failed request
            timeout=httpx.Timeout(timeout_s, pool=None),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
            transport=transport,
        )

    async def _post(self, payload: Any) -> Any:
        try:
            r = await self.client.post(self.rpc_url, json=payload)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        try:
            return r.json()
        except json.JSONDecodeError as e:
            raise ParseError(f"response is not JSON: {e}") from e

    async def call(self, method: str, params: list[Any]) -> Any:
        data = await self._post({"jsonrpc":"2.0","id":1,"method":method,"params":params})
        if not isinstance(data, dict):
            raise ParseError(f"{method}: expected a JSON object, got {type(data).__name__}")
        if "error" in data:
            raise _rpc_error(data["error"])
        if "result" not in data:
            raise ParseError(f"{method}: response has no result")
        return data["result"]

    async def batch_call(self, calls: Sequence[RpcCall]) -> list[Any]:
        if not calls:
            return []
        payload = [
            {"jsonrpc":"2.0","id":i + 1,"method":method,"params":params}
            for i, (method, params) in enumerate(calls)
        ]
        data = await self._post(payload)
        if isinstance(data, dict) and "error" in data:
            raise _rpc_error(data["error"])
        if not isinstance(data, list):
            raise ParseError(f"batch: expected a JSON array, got {type(data).__name__}")

        # nodes may reorder batch elements; correlate strictly by id
        by_id: dict[int, Any] = {}
        for el in data:
            if not isinstance(el, dict):
                raise ParseError(f"batch: element is not an object: {el!r}")
            rid = el.get("id")
            if not isinstance(rid, int) or isinstance(rid, bool) or not 1 <= rid <= len(calls):
                raise ParseError(f"batch: unknown response id {rid!r}")
            if rid in by_id:
                raise ParseError(f"batch: duplicate response id {rid}")
            if "error" in el:
                raise _rpc_error(el["error"])
            if "result" not in el:
                raise ParseError(f"batch: response id {rid} has no result")
            by_id[rid] = el["result"]
        if len(by_id) != len(calls):
            missing = sorted(set(range(1, len(calls) + 1)) - by_id.keys())
            raise ParseError(f"batch: {len(missing)} response(s) missing, first id {missing[0]}")
        return [by_id[i + 1] for i in range(len(calls))]

    async def get_logs(self, address: Address, topic0s: Sequence[Topic0], from_block: int, to_block: int) -> list[dict[str, Any]]:
        res = await self.call("eth_getLogs", [{
            "address": str(address),
            "fromBlock": _to_hex_block(from_block),
            "toBlock": _to_hex_block(to_block),
            "topics": _build_topics_param(topic0s),
        }])
        if res is None:
            return []
        if not isinstance(res, list):
            raise ParseError(f"eth_getLogs: expected a list, got {type(res).__name__}")
        return res

    async def aclose(self) -> None:
        await self.client.aclose()
