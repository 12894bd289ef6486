"""Read-only access to the dishes contract.

Dish ids are converted to the contract's bytes32 key with the registry's
identifier rule before every call. Amounts come back in USDC base units
(6 decimals).
"""

from typing import Any

import structlog
from eth_utils import to_checksum_address
from web3 import AsyncWeb3
from web3.contract import AsyncContract

from src.domains.registry.identifiers import normalize, parse_dish_ref
from src.shared.errors import UpstreamUnavailable

logger = structlog.get_logger()

USDC_DECIMALS = 6

DISHES_ABI: list[dict[str, Any]] = [
    {
        "name": "getHolderCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "dishId", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getCurrentPrice",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "dishId", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getMarketCap",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "dishId", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class DishChainReader:
    """Lazy contract wrapper for holder count and price lookups."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._contract_address = contract_address
        self._web3 = web3
        self._contract: AsyncContract | None = None

    @property
    def configured(self) -> bool:
        return bool(self._contract_address)

    @property
    def contract(self) -> AsyncContract:
        if not self.configured:
            raise UpstreamUnavailable("Contract address is not configured")
        if self._contract is None:
            if self._web3 is None:
                self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._rpc_url))
            try:
                address = to_checksum_address(self._contract_address)
            except ValueError as exc:
                logger.error("dishes_contract_address_invalid", address=self._contract_address)
                raise UpstreamUnavailable("Contract address is invalid") from exc
            self._contract = self._web3.eth.contract(address=address, abi=DISHES_ABI)
            logger.debug("dishes_contract_created", address=self._contract_address)
        return self._contract

    async def holder_count(self, dish_id: str) -> int:
        return int(await self._call("getHolderCount", dish_id))

    async def current_price(self, dish_id: str) -> float:
        return int(await self._call("getCurrentPrice", dish_id)) / 10**USDC_DECIMALS

    async def market_cap(self, dish_id: str) -> float:
        return int(await self._call("getMarketCap", dish_id)) / 10**USDC_DECIMALS

    async def _call(self, function_name: str, dish_id: str) -> Any:
        key = normalize(parse_dish_ref(dish_id))
        contract = self.contract
        try:
            return await getattr(contract.functions, function_name)(key).call()
        except Exception as exc:
            logger.warning(
                "chain_read_failed",
                function=function_name,
                dish_id=dish_id,
                error=str(exc),
            )
            raise UpstreamUnavailable("Chain read failed") from exc
