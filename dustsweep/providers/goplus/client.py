"""GoPlus Security API client: EVM token contract and holder analysis."""

import asyncio

import httpx
from loguru import logger

from dustsweep.providers.goplus.models import GoPlusHolder, GoPlusReport
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://api.gopluslabs.io/api/v1/token_security"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class GoPlusClient:
    """Async HTTP client for GoPlus Security API (free tier works without a key)."""

    def __init__(self, api_key: str = "", max_rps: float = 2.0, timeout: float = 10.0) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_token_security(self, address: str, chain_id: int) -> GoPlusReport | None:
        """Fetch security report for an EVM token."""
        url = f"{BASE_URL}/{chain_id}"
        params = {"contract_addresses": address.lower()}

        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(url, params=params)

                if resp.status_code == 429:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[GOPLUS] Rate limited, waiting {delay}s")
                    await asyncio.sleep(delay)
                    continue

                if resp.status_code >= 500 and attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[GOPLUS] HTTP {resp.status_code}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue

                if resp.status_code != 200:
                    logger.debug(f"[GOPLUS] HTTP {resp.status_code} for {address[:12]}")
                    return None

                try:
                    data = resp.json()
                except ValueError:
                    logger.warning(f"[GOPLUS] Non-JSON body for {address[:12]}")
                    return None
                return _parse_report(data, address)

            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[GOPLUS] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    logger.warning(f"[GOPLUS] Failed after retries for {address[:12]}: {e}")
                    return None

        return None


def _parse_bool(val: str | int | None) -> bool | None:
    """Parse GoPlus '0'/'1' flag to bool."""
    if val is None or val == "":
        return None
    return str(val) == "1"


def _parse_tax(val: str | None) -> float | None:
    """Parse GoPlus tax string (0.0-1.0) to percentage."""
    if val is None or val == "":
        return None
    try:
        return float(val) * 100
    except (ValueError, TypeError):
        return None


def _parse_int(val: str | int | None) -> int | None:
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (ValueError, TypeError):
        return None


def _parse_holders(raw: list | None) -> list[GoPlusHolder]:
    holders: list[GoPlusHolder] = []
    if not isinstance(raw, list):
        return holders
    for h in raw:
        if not isinstance(h, dict):
            continue
        pct = _parse_tax(h.get("percent"))  # same 0-1 fraction encoding
        if pct is None:
            continue
        holders.append(
            GoPlusHolder(
                address=str(h.get("address", "")).lower(),
                percent=pct,
                is_locked=bool(h.get("is_locked")),
                is_contract=bool(h.get("is_contract")),
            )
        )
    return holders


def _parse_report(data: dict, address: str) -> GoPlusReport | None:
    """Parse GoPlus API response."""
    if not isinstance(data, dict) or data.get("code") != 1:
        return None
    result = data.get("result")
    if not isinstance(result, dict):
        return None
    # GoPlus keys the result by lowercase contract address
    token_data = result.get(address.lower()) or result.get(address)
    if not isinstance(token_data, dict):
        return None

    cex = token_data.get("is_in_cex") or {}
    dex = token_data.get("dex")
    return GoPlusReport(
        is_open_source=_parse_bool(token_data.get("is_open_source")),
        is_proxy=_parse_bool(token_data.get("is_proxy")),
        is_mintable=_parse_bool(token_data.get("is_mintable")),
        can_take_back_ownership=_parse_bool(token_data.get("can_take_back_ownership")),
        owner_can_change_balance=_parse_bool(token_data.get("owner_change_balance")),
        hidden_owner=_parse_bool(token_data.get("hidden_owner")),
        selfdestruct=_parse_bool(token_data.get("selfdestruct")),
        external_call=_parse_bool(token_data.get("external_call")),
        transfer_pausable=_parse_bool(token_data.get("transfer_pausable")),
        trading_cooldown=_parse_bool(token_data.get("trading_cooldown")),
        slippage_modifiable=_parse_bool(token_data.get("slippage_modifiable")),
        is_blacklisted=_parse_bool(token_data.get("is_blacklisted")),
        is_true_token=_parse_bool(token_data.get("is_true_token")),
        is_airdrop_scam=_parse_bool(token_data.get("is_airdrop_scam")),
        is_honeypot=_parse_bool(token_data.get("is_honeypot")),
        cannot_buy=_parse_bool(token_data.get("cannot_buy")),
        cannot_sell_all=_parse_bool(token_data.get("cannot_sell_all")),
        buy_tax=_parse_tax(token_data.get("buy_tax")),
        sell_tax=_parse_tax(token_data.get("sell_tax")),
        holder_count=_parse_int(token_data.get("holder_count")),
        holders=_parse_holders(token_data.get("holders")),
        lp_holder_count=_parse_int(token_data.get("lp_holder_count")),
        lp_holders=_parse_holders(token_data.get("lp_holders")),
        creator_percent=_parse_tax(token_data.get("creator_percent")),
        owner_percent=_parse_tax(token_data.get("owner_percent")),
        is_in_cex=_parse_bool(cex.get("listed")) if isinstance(cex, dict) else None,
        cex_list=list(cex.get("cex_list") or []) if isinstance(cex, dict) else [],
        dex_count=len(dex) if isinstance(dex, list) else 0,
        trust_list=_parse_bool(token_data.get("trust_list")),
    )
