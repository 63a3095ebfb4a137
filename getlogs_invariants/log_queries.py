from web3 import Web3
from web3.exceptions import Web3RPCError

from getlogs_invariants.errors import RpcQueryError
from getlogs_invariants.log_entry import LogEntry, normalize_logs
from getlogs_invariants.rpc_provider import RpcTemporarilyUnavailable


def _rpc_error_fields(exc: Web3RPCError):
    response = getattr(exc, "rpc_response", None) or {}
    error = response.get("error") or {}
    if isinstance(error, dict):
        return error.get("code"), error.get("message")
    return None, str(error)


class Web3LogQueries:
    """
    eth_getLogs queries used by the block checker, routed through Web3Router.

    Every failure leaves this class as RpcQueryError.
    """

    def __init__(self, web3_router):
        self.web3_router = web3_router

    def _get_logs(self, filter_params: dict) -> list[LogEntry]:
        raw = self._call("eth_getLogs", lambda w3: w3.eth.get_logs(filter_params))
        try:
            return normalize_logs(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcQueryError("eth_getLogs", f"malformed log in response: {e!r}") from e

    def _call(self, method: str, fn):
        try:
            return self.web3_router.call(fn)
        except Web3RPCError as e:
            code, message = _rpc_error_fields(e)
            raise RpcQueryError(
                method, f"error response {code} {message}", code=code, message=message
            ) from e
        except RpcTemporarilyUnavailable as e:
            cause = e.__cause__ or e
            raise RpcQueryError(method, f"transport error: {cause}") from e

    def query_logs_unfiltered(self, block_number: int) -> list[LogEntry]:
        return self._get_logs({"fromBlock": block_number, "toBlock": block_number})

    def query_logs_by_address(self, block_from: int, block_to: int, address: str) -> list[LogEntry]:
        return self._get_logs(
            {
                "fromBlock": block_from,
                "toBlock": block_to,
                "address": Web3.to_checksum_address(address),
            }
        )

    def query_logs_by_address_and_topic(
        self, block_from: int, block_to: int, address: str, topic: str
    ) -> list[LogEntry]:
        return self._get_logs(
            {
                "fromBlock": block_from,
                "toBlock": block_to,
                "address": Web3.to_checksum_address(address),
                "topics": [topic],
            }
        )

    def latest_block(self) -> int:
        return self._call("eth_blockNumber", lambda w3: w3.eth.block_number)
