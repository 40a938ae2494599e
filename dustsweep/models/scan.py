from datetime import datetime

from dustsweep.models.base import DomainModel, UsdValue
from dustsweep.models.token import DustToken


class ScanResult(DomainModel):
    wallet_address: str
    chain_id: int
    tokens: list[DustToken]
    total_tokens: int
    dust_tokens: int
    excluded_count: int
    consolidatable_count: int
    total_value_usd: UsdValue
    dust_value_usd: UsdValue
    consolidatable_value_usd: UsdValue
    scan_duration_ms: int
    rpc_provider: str
    scanned_at: datetime
