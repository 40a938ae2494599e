"""Static metadata for the EVM chains the service supports."""

from dataclasses import dataclass

NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
ONEINCH_ROUTER_V6 = "0x111111125421ca6dc452d289314280a0f8842a65"


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    native_symbol: str
    wrapped_native: str
    dexscreener_slug: str
    coingecko_platform: str
    moralis_chain: str | None  # hex chain id, None when Moralis has no index
    usdc: str
    router_spender: str
    carbon_risk: float  # 0-100, per-tx footprint relative to the other supported chains
    honeypot_supported: bool = False
    # Blue chips scored safe without third-party lookups (usdc and wrapped native are implied)
    blue_chips: frozenset[str] = frozenset()

    @property
    def safe_tokens(self) -> frozenset[str]:
        return self.blue_chips | {self.usdc, self.wrapped_native, NATIVE_TOKEN}


CHAINS: dict[int, ChainInfo] = {
    1: ChainInfo(
        chain_id=1,
        name="Ethereum",
        native_symbol="ETH",
        wrapped_native="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
        dexscreener_slug="ethereum",
        coingecko_platform="ethereum",
        moralis_chain="0x1",
        usdc="0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=30.0,
        honeypot_supported=True,
        blue_chips=frozenset(
            {
                "0xdac17f958d2ee523a2206206994597c13d831ec7",  # USDT
                "0x6b175474e89094c44da98b954eedeac495271d0f",  # DAI
            }
        ),
    ),
    8453: ChainInfo(
        chain_id=8453,
        name="Base",
        native_symbol="ETH",
        wrapped_native="0x4200000000000000000000000000000000000006",
        dexscreener_slug="base",
        coingecko_platform="base",
        moralis_chain="0x2105",
        usdc="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=10.0,
        honeypot_supported=True,
        blue_chips=frozenset(
            {
                "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",  # DAI
                "0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22",  # cbETH
                "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca",  # USDbC
            }
        ),
    ),
    42161: ChainInfo(
        chain_id=42161,
        name="Arbitrum",
        native_symbol="ETH",
        wrapped_native="0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        dexscreener_slug="arbitrum",
        coingecko_platform="arbitrum-one",
        moralis_chain="0xa4b1",
        usdc="0xaf88d065e77c8cc2239327c5edb3a432268e5831",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=10.0,
        blue_chips=frozenset(
            {
                "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",  # USDT
                "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",  # DAI
            }
        ),
    ),
    10: ChainInfo(
        chain_id=10,
        name="Optimism",
        native_symbol="ETH",
        wrapped_native="0x4200000000000000000000000000000000000006",
        dexscreener_slug="optimism",
        coingecko_platform="optimistic-ethereum",
        moralis_chain="0xa",
        usdc="0x0b2c639c533813f4aa9d7837caf62653d097ff85",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=10.0,
        blue_chips=frozenset(
            {
                "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58",  # USDT
                "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",  # DAI
            }
        ),
    ),
    137: ChainInfo(
        chain_id=137,
        name="Polygon",
        native_symbol="POL",
        wrapped_native="0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270",
        dexscreener_slug="polygon",
        coingecko_platform="polygon-pos",
        moralis_chain="0x89",
        usdc="0x3c499c542cef5e3811e1192ce70d8cc03d5c3359",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=15.0,
        blue_chips=frozenset(
            {
                "0xc2132d05d31c914a87c6611c10748aeb04b58e8f",  # USDT
                "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063",  # DAI
            }
        ),
    ),
    56: ChainInfo(
        chain_id=56,
        name="BNB Chain",
        native_symbol="BNB",
        wrapped_native="0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c",
        dexscreener_slug="bsc",
        coingecko_platform="binance-smart-chain",
        moralis_chain="0x38",
        usdc="0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=20.0,
        honeypot_supported=True,
        blue_chips=frozenset({"0x55d398326f99059ff775485246999027b3197955"}),  # USDT
    ),
    43114: ChainInfo(
        chain_id=43114,
        name="Avalanche",
        native_symbol="AVAX",
        wrapped_native="0xb31f66aa3c1e785363f0875a1b74e27b85fd66c7",
        dexscreener_slug="avalanche",
        coingecko_platform="avalanche",
        moralis_chain="0xa86a",
        usdc="0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e",
        router_spender=ONEINCH_ROUTER_V6,
        carbon_risk=15.0,
        blue_chips=frozenset({"0x9702230a8ea53601f5cd2dc00fdbc13d4df4a8c7"}),  # USDT
    ),
    324: ChainInfo(
        chain_id=324,
        name="zkSync",
        native_symbol="ETH",
        wrapped_native="0x5aea5775959fbc2557cc8789bc1bf90a239d9a91",
        dexscreener_slug="zksync",
        coingecko_platform="zksync",
        moralis_chain=None,
        usdc="0x1d17cbcf0d6d143135ae902365d2e5e2a16538d4",
        router_spender="0x6fd4383cb451173d5f9304f041c7bcbf27d561ff",
        carbon_risk=10.0,
    ),
}


def get_chain(chain_id: int) -> ChainInfo | None:
    return CHAINS.get(chain_id)


def is_native(address: str) -> bool:
    return address.lower() == NATIVE_TOKEN


def is_safe_token(address: str, chain_id: int) -> bool:
    chain = CHAINS.get(chain_id)
    return chain is not None and address.lower() in chain.safe_tokens
