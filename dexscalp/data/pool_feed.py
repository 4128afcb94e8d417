"""
On‑chain pool price feed.

This module reads a liquidity pool's state over JSON‑RPC with
`web3` and converts it to a decimal price with a `PriceModel`.  It
only performs view calls; no transaction is ever signed or sent.

The RPC endpoint usually embeds an API key.  Keep it in the
environment (or a `.env` file) and reference it from the YAML file as
``${ALCHEMY_KEY}``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional, Tuple

from web3 import AsyncHTTPProvider, AsyncWeb3

from ..config.schema import PoolConfig, PoolKind
from ..errors import FeedError
from .price_model import (
    ConcentratedLiquidityModel,
    ConstantProductModel,
    PoolState,
    PriceModel,
    ReserveState,
    Slot0State,
)


logger = logging.getLogger(__name__)


_TOKEN_GETTERS = [
    {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    }
    for name in ("token0", "token1")
]

CONSTANT_PRODUCT_POOL_ABI = _TOKEN_GETTERS + [
    {
        "name": "getReserves",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "reserve0", "type": "uint112"},
            {"name": "reserve1", "type": "uint112"},
            {"name": "blockTimestampLast", "type": "uint32"},
        ],
    },
]

CONCENTRATED_POOL_ABI = _TOKEN_GETTERS + [
    {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
]


def make_price_model(config: PoolConfig) -> PriceModel:
    """Build the price model matching the configured pool kind."""
    cls = ConstantProductModel if config.kind is PoolKind.CONSTANT_PRODUCT else ConcentratedLiquidityModel
    return cls(
        token0_decimals=config.token0_decimals,
        token1_decimals=config.token1_decimals,
        invert=config.invert,
    )


class PoolPriceFeed:
    """Fetch the current price of a pool.

    Parameters
    ----------
    config : PoolConfig
        Pool address, RPC endpoint and token decimals.
    model : PriceModel, optional
        Converts the raw pool state to a price.  Built from `config`
        when omitted.
    contract : object, optional
        A web3 contract (or anything exposing the same ``functions``
        interface).  Created lazily from `config` when omitted.
    web3 : AsyncWeb3, optional
        Client the contract is built on.  Created from `pool.rpc_url`
        when omitted.  `close()` disconnects its provider.
    """

    def __init__(
        self,
        config: PoolConfig,
        model: Optional[PriceModel] = None,
        contract: Any = None,
        web3: Any = None,
    ) -> None:
        self.config = config
        self.model = model or make_price_model(config)
        self._contract = contract
        self._web3 = web3

    @property
    def contract(self) -> Any:
        """Lazily build the pool contract."""
        if self._contract is None:
            if not self.config.rpc_url or not self.config.address:
                raise FeedError("pool.rpc_url and pool.address must be configured")
            if self._web3 is None:
                self._web3 = AsyncWeb3(AsyncHTTPProvider(self.config.rpc_url))
            abi = (
                CONSTANT_PRODUCT_POOL_ABI
                if self.config.kind is PoolKind.CONSTANT_PRODUCT
                else CONCENTRATED_POOL_ABI
            )
            self._contract = self._web3.eth.contract(
                address=AsyncWeb3.to_checksum_address(self.config.address),
                abi=abi,
            )
        return self._contract

    async def describe_tokens(self) -> Tuple[str, str]:
        """Log and return the pool's token ordering.

        The order decides which way round the raw price is quoted and
        therefore whether `pool.invert` is needed.
        """
        try:
            token0 = await self.contract.functions.token0().call()
            token1 = await self.contract.functions.token1().call()
        except FeedError:
            raise
        except Exception as exc:
            raise FeedError(f"Error fetching token ordering: {exc}") from exc
        logger.info("token0: %s, token1: %s", token0, token1)
        return token0, token1

    async def read_state(self) -> PoolState:
        """Read the raw pool state the price model needs."""
        try:
            if self.config.kind is PoolKind.CONSTANT_PRODUCT:
                reserve0, reserve1, _ = await self.contract.functions.getReserves().call()
                return ReserveState(reserve0=int(reserve0), reserve1=int(reserve1))
            slot0 = await self.contract.functions.slot0().call()
            return Slot0State(sqrt_price_x96=int(slot0[0]))
        except FeedError:
            raise
        except Exception as exc:
            raise FeedError(f"Failed to read pool {self.config.address}: {exc}") from exc

    async def fetch_price(self) -> Decimal:
        state = await self.read_state()
        price = self.model.compute_price(state)
        logger.debug("Pool state %s -> price %s", state, price)
        return price

    async def close(self) -> None:
        """Release the HTTP session held by the web3 provider."""
        if self._web3 is None:
            return
        await self._web3.provider.disconnect()
        self._web3 = None
        self._contract = None
