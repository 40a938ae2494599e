from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Cache backend: "memory" (single process) or "redis" (shared)
    cache_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_debug: bool = False
    rate_limit_scan: str = "100/minute"
    rate_limit_risk: str = "200/minute"
    rate_limit_consolidate: str = "20/minute"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Dust classification
    dust_threshold_usd: float = 10.0
    min_consolidation_value_usd: float = 0.10  # below this a swap costs more than it returns

    # Swaps / consolidation
    max_price_impact_pct: float = 5.0  # strict: 5.00 passes, 5.01 is rejected
    default_slippage_bps: int = 50
    max_slippage_bps: int = 5000
    max_batch_size: int = 20
    protocol_fee_rate: float = 0.008
    quote_ttl_sec: int = 30
    consolidation_ttl_sec: int = 900

    # Timeouts / retries
    rpc_timeout_sec: float = 5.0
    rpc_max_attempts: int = 3
    rpc_backoff_base_sec: float = 0.25
    api_timeout_sec: float = 10.0

    # Cache TTLs
    risk_cache_ttl_sec: int = 180
    price_cache_ttl_sec: int = 60
    scan_cache_ttl_sec: int = 300

    # Risk scoring
    risk_concurrency: int = 5
    risk_exclude_threshold: float = 50.0  # overall above this -> excluded (high/critical)
    risk_failed_score: float = 50.0  # assessment raised -> medium, confidence 0
    risk_unknown_score: float = 70.0  # every layer missing -> high, confidence 0

    # Provider API keys (all optional)
    moralis_api_key: str = ""
    oneinch_api_key: str = ""
    oneinch_referrer: str = ""
    oneinch_fee_pct: float = 0.0
    goplus_api_key: str = ""
    coingecko_api_key: str = ""

    # Provider rate limits
    goplus_max_rps: float = 2.0
    honeypot_max_rps: float = 2.0
    dexscreener_max_rps: float = 4.0
    coingecko_max_rps: float = 0.5
    oneinch_max_rps: float = 1.0
    moralis_max_rps: float = 5.0

    # Chain RPC endpoints, comma-separated, tried in order (primary first)
    rpc_urls_ethereum: str = ""
    rpc_urls_base: str = "https://mainnet.base.org"
    rpc_urls_arbitrum: str = ""
    rpc_urls_optimism: str = ""
    rpc_urls_polygon: str = ""
    rpc_urls_bnb: str = ""
    rpc_urls_avalanche: str = ""
    rpc_urls_zksync: str = ""

    def rpc_urls_for(self, chain_id: int) -> list[str]:
        """Ordered RPC endpoints configured for a chain."""
        field = {
            1: self.rpc_urls_ethereum,
            8453: self.rpc_urls_base,
            42161: self.rpc_urls_arbitrum,
            10: self.rpc_urls_optimism,
            137: self.rpc_urls_polygon,
            56: self.rpc_urls_bnb,
            43114: self.rpc_urls_avalanche,
            324: self.rpc_urls_zksync,
        }.get(chain_id, "")
        return [u.strip() for u in field.split(",") if u.strip()]


settings = Settings()
