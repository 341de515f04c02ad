"""Pathfinder RPC client for the Circles protocol."""

import asyncio
import logging
from typing import Optional, Dict, Any
import aiohttp
import pydantic
from aiohttp import ClientTimeout, ClientError

from ..core.config import RedeemConfig
from ..core.types import (
    FindPathParams,
    PathfindingResult,
    RPCRequest,
    RPCResponse,
    RPCErrorPayload,
    TransferStep
)
from ..core.exceptions import (
    TransportError,
    RPCError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)

FIND_PATH_METHOD = 'circlesV2_findPath'


class PathfinderClient:
    """Async RPC client for the Circles pathfinder service.

    Every call is a single request/response exchange. The client never
    retries; retry and backoff policy belongs to the caller.
    """

    def __init__(self, config: RedeemConfig):
        """Initialize the pathfinder client.

        Args:
            config: Redeemer configuration carrying the pathfinder URL
        """
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure aiohttp session is created."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.config.request_timeout),
                headers={
                    'Content-Type': 'application/json',
                    'User-Agent': 'circles-redeem-python/0.1.0'
                }
            )

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self._closed = True

    async def _make_rpc_call(
        self,
        method: str,
        params: list,
        context: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            method: RPC method name
            params: RPC parameters
            context: Extra fields (from_addr, to_addr, amount) attached to raised errors

        Returns:
            RPC result data

        Raises:
            TransportError: Service unreachable or non-success HTTP status
            MalformedResponseError: Response has neither a result nor an error
            RPCError: Service reported an error
        """
        if self._closed:
            raise RuntimeError("Client has been closed")

        await self._ensure_session()
        context = context or {}

        request = RPCRequest(method=method, params=params)
        logger.debug(f"RPC request {method}: {params}")

        try:
            async with self.session.post(self.config.pathfinder_url, json=request.dict()) as response:
                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    raise TransportError(
                        f"Pathfinder RPC returned HTTP {response.status}",
                        status_code=response.status,
                        details={'method': method, 'body': error_text},
                        **context
                    )

                try:
                    json_data = await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(
                        f"Failed to parse JSON response: {e}",
                        details={'method': method},
                        **context
                    )
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Failed to reach pathfinder at {self.config.pathfinder_url}: {e!r}",
                details={'method': method},
                **context
            ) from e

        try:
            rpc_response = RPCResponse(**json_data)
        except (TypeError, pydantic.ValidationError) as e:
            raise MalformedResponseError(
                f"Invalid RPC response format: {e}",
                response_data=json_data,
                **context
            )

        if rpc_response.error is not None:
            try:
                error = RPCErrorPayload(**rpc_response.error)
            except pydantic.ValidationError:
                raise MalformedResponseError(
                    f"Invalid RPC error object: {rpc_response.error}",
                    response_data=json_data,
                    **context
                )
            raise RPCError(
                f"RPC error {error.code}: {error.message}",
                code=error.code,
                rpc_message=error.message,
                details={'rpc_error': rpc_response.error},
                **context
            )

        if rpc_response.result is None:
            raise MalformedResponseError(
                "RPC response carries neither result nor error",
                response_data=json_data,
                **context
            )

        return rpc_response.result

    async def find_path(self, params: FindPathParams) -> PathfindingResult:
        """Find a path between source and destination.

        Args:
            params: Pathfinding parameters

        Returns:
            Pathfinding result with transfers

        Raises:
            TransportError: Service unreachable or non-success HTTP status
            MalformedResponseError: Response or its result is malformed
            RPCError: Service reported an error
        """
        logger.info(f"Finding path from {params.from_addr} to {params.to_addr}, amount: {params.target_flow}")

        rpc_params = {
            'Source': params.from_addr,
            'Sink': params.to_addr,
            'TargetFlow': params.target_flow,
            'WithWrap': params.use_wrapped_balances,
            'FromTokens': params.from_tokens,
            'ToTokens': params.to_tokens,
            'ExcludedFromTokens': params.exclude_from_tokens,
            'ExcludedToTokens': params.exclude_to_tokens,
        }
        context = {
            'from_addr': params.from_addr,
            'to_addr': params.to_addr,
            'amount': params.target_flow,
        }

        result = await self._make_rpc_call(FIND_PATH_METHOD, [rpc_params], context)

        try:
            transfers = [TransferStep.from_rpc(transfer_data) for transfer_data in result['transfers']]
            pathfinding_result = PathfindingResult(
                max_flow=result['maxFlow'],
                transfers=transfers
            )
        except (KeyError, TypeError, pydantic.ValidationError) as e:
            raise MalformedResponseError(
                f"Invalid pathfinding result: {e!r}",
                response_data=result,
                **context
            )

        logger.info(
            f"Found path with {len(pathfinding_result.transfers)} steps, "
            f"max flow: {pathfinding_result.max_flow}"
        )
        return pathfinding_result
