"""Minimal async JSON-RPC 2.0 client for talking to an Ethereum node or wallet bridge."""
from __future__ import annotations

import itertools
from typing import Any

import httpx
from loguru import logger

from ccli.engine.errors import DISCONNECTED, ProviderRpcError


class JsonRpcClient:
    """POSTs JSON-RPC requests to ``url`` using a shared ``httpx.AsyncClient``.

    Every failure is raised as ``ProviderRpcError``: remote errors keep the code
    the node returned, while transport problems (refused connections, timeouts,
    non-2xx responses, garbage bodies) are reported as ``DISCONNECTED`` so the
    caller can treat them as a lost provider.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        logger.trace("[rpc] -> {} {}", method, payload["params"])

        try:
            got = await self.client.post(self.url, json=payload)
            got.raise_for_status()
            body = got.json()
        except httpx.HTTPError as e:
            logger.warning("[rpc] {} failed talking to {}: {}", method, self.url, e)
            raise ProviderRpcError(DISCONNECTED, f"{method}: {e}") from e
        except ValueError as e:
            # body was not JSON
            raise ProviderRpcError(DISCONNECTED, f"{method}: invalid response body") from e

        if not isinstance(body, dict):
            raise ProviderRpcError(DISCONNECTED, f"{method}: unexpected response {body!r}")

        if (err := body.get("error")) is not None:
            code = int(err.get("code", -32603))
            message = str(err.get("message", "unknown error"))
            logger.debug("[rpc] <- {} error {}: {}", method, code, message)
            raise ProviderRpcError(code, message, err.get("data"))

        result = body.get("result")
        logger.trace("[rpc] <- {} {}", method, result)
        return result

    async def aclose(self) -> None:
        await self.client.aclose()
