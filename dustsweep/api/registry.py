"""Runtime components shared by the HTTP handlers.

Populated once at startup by ``build_services()`` (or by tests with fakes)
and stored on ``app.state.services``. Everything runs on one event loop,
so handlers read these references directly.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dustsweep.core.cache import TTLStore
    from dustsweep.core.consolidation import ConsolidationBuilder
    from dustsweep.core.price_oracle import TokenPriceOracle
    from dustsweep.core.risk_scorer import RiskScorer
    from dustsweep.core.scanner import CachedScanRecordSink, WalletScanner
    from dustsweep.core.swap_aggregator import SwapAggregator
    from dustsweep.core.tracker import ConsolidationTracker


@dataclass
class ServiceRegistry:
    store: TTLStore
    oracle: TokenPriceOracle
    scanner: WalletScanner
    risk_scorer: RiskScorer
    aggregator: SwapAggregator
    builder: ConsolidationBuilder
    tracker: ConsolidationTracker
    scan_sink: CachedScanRecordSink
    started_at: float = field(default_factory=time.monotonic)
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    @property
    def uptime_sec(self) -> int:
        return int(time.monotonic() - self.started_at)

    async def close(self) -> None:
        for close in self.closers:
            await close()
        self.closers.clear()
