import asyncio


class RateLimiter:
    """Minimum-interval limiter for async HTTP clients (one request per 1/max_rps s)."""

    def __init__(self, max_rps: float) -> None:
        if max_rps <= 0:
            raise ValueError("max_rps must be positive")
        self._min_interval = 1.0 / max_rps
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait = self._min_interval - (loop.time() - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = loop.time()


class SharedRateLimiter(RateLimiter):
    """Limiter shared by every client that spends the same API key.

    Pass the SAME instance to all clients sharing a key, so total RPS
    stays within the provider's quota regardless of how many components
    call it concurrently.
    """

    _instances: dict[str, "SharedRateLimiter"] = {}

    def __init__(self, key: str, max_rps: float) -> None:
        super().__init__(max_rps)
        self._key = key

    @classmethod
    def get_or_create(cls, key: str, max_rps: float) -> "SharedRateLimiter":
        """Get existing limiter for key or create a new one.

        No await between check and set, so this is safe within one loop.
        """
        inst = cls._instances.get(key)
        if inst is None:
            inst = cls(key, max_rps)
            cls._instances[key] = inst
        return inst

    @classmethod
    def reset(cls) -> None:
        cls._instances.clear()
