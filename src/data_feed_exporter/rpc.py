"""RPC client wrapper and error categorization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

from web3 import Web3
from web3.exceptions import ContractLogicError, Web3RPCError

from .exceptions import DecodeError, RpcConnectionError, RpcError, RpcProtocolError, RpcTimeoutError
from .logging import get_logger

LOGGER = get_logger(__name__)

# Caller used for read-only simulations that do not act on behalf of an account.
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

BlockIdentifier = int | Literal["latest", "pending", "earliest", "finalized", "safe"]


@dataclass(frozen=True, slots=True)
class ContractCall:
    """A read-only contract call evaluated against a block."""

    to: str

    data: str

    caller: str = ZERO_ADDRESS

    block: BlockIdentifier = "latest"

    def as_transaction(self) -> dict[str, str]:
        return {
            "to": Web3.to_checksum_address(self.to),
            "from": Web3.to_checksum_address(self.caller),
            "data": self.data,
        }


MASKED_VALUE = "<masked>"


def mask_rpc_url(text: str, rpc_url: str | None) -> str:
    """Replace the RPC URL and its path or query in ``text`` with a placeholder.

    HTTP errors quote the request path on its own, and provider URLs carry
    their API key in the path or query.
    """
    if not rpc_url:
        return text

    parts = urlsplit(rpc_url)
    path = parts.path if parts.path != "/" else ""

    # Longest first, so a shorter fragment never splits a longer match.
    secrets = [rpc_url, urlunsplit(("", "", path, parts.query, "")), path, parts.query]

    for secret in secrets:
        if not secret:
            continue

        text = text.replace(secret, MASKED_VALUE)

    return text


def _categorize_error(exception: Exception) -> str:
    """Categorize an exception into an error type for metrics.

    Returns:
        The error category: "timeout", "connection_error", "rpc_error",
        "decode_error", "value_error", or "unknown".
    """
    if isinstance(exception, RpcTimeoutError):
        return "timeout"
    if isinstance(exception, RpcConnectionError):
        return "connection_error"
    if isinstance(exception, RpcProtocolError):
        return "rpc_error"
    if isinstance(exception, RpcError):
        original = str(exception.context.get("error_type", ""))
        return original or "rpc_error"

    # Contract reverts and JSON-RPC error objects.
    if isinstance(exception, (ContractLogicError, Web3RPCError)):
        return "rpc_error"

    if isinstance(exception, DecodeError):
        return "decode_error"

    exception_type = type(exception).__name__.lower()
    exception_str = str(exception).lower()

    if "timeout" in exception_type or "timed out" in exception_str or "timeout" in exception_str:
        return "timeout"

    if "connection" in exception_type or "connection" in exception_str:
        return "connection_error"

    if isinstance(exception, OSError):
        if any(
            keyword in exception_str
            for keyword in [
                "connection refused",
                "network unreachable",
                "name resolution",
                "name or service not known",
                "connection aborted",
                "connection reset",
            ]
        ):
            return "connection_error"

    if "rpc" in exception_type or "rpc" in exception_str:
        return "rpc_error"

    if isinstance(exception, (ValueError, TypeError, AttributeError, KeyError)):
        return "value_error"

    return "unknown"


def _extract_rpc_error(exception: Exception) -> tuple[int | None, str | None]:
    if isinstance(exception, ContractLogicError):
        return None, exception.message or str(exception)

    if isinstance(exception, Web3RPCError):
        response = getattr(exception, "rpc_response", None) or {}
        error = response.get("error") if isinstance(response, dict) else None
        if isinstance(error, dict):
            return error.get("code"), error.get("message")
        return None, exception.user_message or str(exception)

    return None, None


def _wrap_rpc_exception(
    exception: Exception,
    *,
    rpc_url: str,
    operation: str,
    description: str,
    job: str | None = None,
    target: str | None = None,
) -> RpcError:
    """Wrap an exception in the matching RpcError subclass."""
    if isinstance(exception, RpcError):
        return exception

    error_type = _categorize_error(exception)
    error_message = f"RPC operation '{description}' failed: {mask_rpc_url(str(exception), rpc_url)}"

    common: dict[str, Any] = {
        "job": job,
        "rpc_url": rpc_url,
        "operation": operation,
        "target": target,
    }

    if error_type == "timeout":
        return RpcTimeoutError(
            error_message,
            context={"original_exception": type(exception).__name__},
            **common,
        )
    if error_type == "connection_error":
        return RpcConnectionError(
            error_message,
            context={"original_exception": type(exception).__name__},
            **common,
        )
    if error_type == "rpc_error":
        rpc_error_code, rpc_error_message = _extract_rpc_error(exception)

        return RpcProtocolError(
            error_message,
            rpc_error_code=rpc_error_code,
            rpc_error_message=rpc_error_message,
            context={"original_exception": type(exception).__name__},
            **common,
        )

    return RpcError(
        error_message,
        context={"original_exception": type(exception).__name__, "error_type": error_type},
        **common,
    )


def execute_rpc_operation(
    operation: Callable[[], Any],
    description: str,
    *,
    rpc_url: str,
    operation_type: str,
    job: str | None = None,
    target: str | None = None,
    log_level: int = logging.DEBUG,
    context_extra: dict[str, Any] | None = None,
) -> Any:
    """Execute an RPC operation once; the next poll cycle is the retry.

    Raises:
        RpcError: Wrapping whatever the operation raised.
    """
    try:
        return operation()
    except Exception as exc:  # noqa: BLE001
        error = _wrap_rpc_exception(
            exc,
            rpc_url=rpc_url,
            operation=operation_type,
            description=description,
            job=job,
            target=target,
        )

        LOGGER.log(
            log_level,
            "RPC operation '%s' failed: %s",
            description,
            mask_rpc_url(str(exc), rpc_url),
            extra=context_extra or {},
        )

        if error is exc:
            raise

        raise error from exc


@runtime_checkable
class RpcClientProtocol(Protocol):
    @property
    def rpc_url(self) -> str: ...

    def eth_call(
        self,
        call: ContractCall,
        *,
        job: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> str: ...


class RpcClient:
    """Wrapper around Web3 that centralizes error wrapping.

    Web3's HTTP provider keeps a per-thread session, so one client can be
    shared by every job in the process.
    """

    def __init__(self, web3: Web3, rpc_url: str) -> None:
        self._web3 = web3
        self._rpc_url = rpc_url

    @property
    def web3(self) -> Web3:
        return self._web3

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def eth_call(
        self,
        call: ContractCall,
        *,
        job: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> str:
        """Run ``eth_call`` and return the result as a 0x-prefixed hex string."""

        def _operation() -> str:
            result = self._web3.eth.call(call.as_transaction(), call.block)
            return Web3.to_hex(result)

        return execute_rpc_operation(
            _operation,
            f"eth_call({call.to}, {call.data})",
            rpc_url=self._rpc_url,
            operation_type="eth_call",
            job=job,
            target=call.to,
            context_extra=extra,
        )


__all__ = [
    "BlockIdentifier",
    "ContractCall",
    "MASKED_VALUE",
    "RpcClient",
    "RpcClientProtocol",
    "ZERO_ADDRESS",
    "_categorize_error",
    "_wrap_rpc_exception",
    "execute_rpc_operation",
    "mask_rpc_url",
]
