"""Consolidation identifiers, stored quotes and terminal results."""

from __future__ import annotations

import re
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from loguru import logger

from dustsweep.chain.rpc import RpcPool
from dustsweep.core.cache import TTLStore, cache_key
from dustsweep.core.errors import BusinessError, ErrorCode, RpcError, ValidationError
from dustsweep.models.consolidation import ConsolidationQuote, ConsolidationResult, ConsolidationStatus

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

# External gamification: returns XP granted for a confirmed consolidation
RewardHook = Callable[[ConsolidationResult], Awaitable[int | None]]

TERMINAL_STATUSES = frozenset({ConsolidationStatus.CONFIRMED, ConsolidationStatus.FAILED})


class ConsolidationTracker:
    def __init__(
        self,
        store: TTLStore,
        *,
        ttl: int = 900,
        rpc_pools: Callable[[int], RpcPool | None] | None = None,
        reward_hook: RewardHook | None = None,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._rpc_pools = rpc_pools
        self._reward_hook = reward_hook

    async def register(self, quote: ConsolidationQuote) -> str:
        consolidation_id = uuid.uuid4().hex
        await self._store.set(cache_key("consolidation", consolidation_id), quote.to_json_dict(), self._ttl)
        logger.info(f"[CONSOLIDATE] Registered {consolidation_id} ({len(quote.swaps)} swaps)")
        return consolidation_id

    async def get(self, consolidation_id: str) -> ConsolidationQuote:
        data = await self._store.get(cache_key("consolidation", consolidation_id))
        if data is None:
            raise BusinessError(
                f"Consolidation {consolidation_id} not found or expired",
                code=ErrorCode.QUOTE_NOT_FOUND,
                context={"consolidation_id": consolidation_id},
            )
        return ConsolidationQuote.model_validate(data)

    async def get_result(self, consolidation_id: str) -> ConsolidationResult | None:
        data = await self._store.get(cache_key("consolidation-result", consolidation_id))
        return ConsolidationResult.model_validate(data) if data is not None else None

    async def record_result(
        self,
        consolidation_id: str,
        *,
        tx_hash: str | None = None,
        failure_reason: str | None = None,
    ) -> ConsolidationResult:
        """Record what happened on-chain after the external signer submitted.

        With an RPC pool the receipt decides confirmed/failed; without one,
        or while the receipt is missing, the result stays pending. Once a
        result is terminal it is returned unchanged on every later call.
        """
        if tx_hash is None and failure_reason is None:
            raise ValidationError("Either txHash or error is required")
        if tx_hash is not None and not TX_HASH_RE.match(tx_hash):
            raise ValidationError(f"Invalid transaction hash: {tx_hash!r}")

        quote = await self.get(consolidation_id)
        previous = await self.get_result(consolidation_id)
        if previous is not None and previous.status in TERMINAL_STATUSES:
            logger.debug(f"[CONSOLIDATE] {consolidation_id} already {previous.status.value}")
            return previous

        status = ConsolidationStatus.FAILED if failure_reason else ConsolidationStatus.PENDING
        if tx_hash and not failure_reason:
            status, failure_reason = await self._receipt_status(quote.chain_id, tx_hash)

        result = ConsolidationResult(
            consolidation_id=consolidation_id,
            chain_id=quote.chain_id,
            tx_hash=tx_hash.lower() if tx_hash else None,
            status=status,
            failure_reason=failure_reason,
            recorded_at=datetime.now(UTC),
        )
        if status is ConsolidationStatus.CONFIRMED and self._reward_hook is not None:
            result = result.model_copy(update={"xp_awarded": await self._award(result)})

        await self._store.set(cache_key("consolidation-result", consolidation_id), result.to_json_dict(), self._ttl)
        logger.info(f"[CONSOLIDATE] {consolidation_id} -> {status.value}" + (f" tx={tx_hash}" if tx_hash else ""))
        return result

    async def _receipt_status(self, chain_id: int, tx_hash: str) -> tuple[ConsolidationStatus, str | None]:
        pool = self._rpc_pools(chain_id) if self._rpc_pools else None
        if pool is None:
            return ConsolidationStatus.PENDING, None
        try:
            receipt, _ = await pool.call("eth_getTransactionReceipt", [tx_hash])
        except RpcError as e:
            logger.warning(f"[CONSOLIDATE] Receipt lookup failed for {tx_hash[:12]}: {e.message}")
            return ConsolidationStatus.PENDING, None
        if not receipt:
            return ConsolidationStatus.PENDING, None
        if receipt.get("status") == "0x1":
            return ConsolidationStatus.CONFIRMED, None
        return ConsolidationStatus.FAILED, "Transaction reverted"

    async def _award(self, result: ConsolidationResult) -> int | None:
        if self._reward_hook is None:
            return None
        try:
            return await self._reward_hook(result)
        except Exception as e:
            logger.warning(f"[CONSOLIDATE] Reward hook failed for {result.consolidation_id}: {e}")
            return None
