from pydantic import BaseModel


class HoneypotSimulation(BaseModel):
    buyTax: float | None = None  # percentage (0-100)
    sellTax: float | None = None
    transferTax: float | None = None
    buyGas: str | None = None
    sellGas: str | None = None

    model_config = {"extra": "ignore"}


class HoneypotVerdict(BaseModel):
    isHoneypot: bool = False
    honeypotReason: str | None = None

    model_config = {"extra": "ignore"}


class HoneypotReport(BaseModel):
    """Simulated buy/sell result from honeypot.is."""

    simulationSuccess: bool = False
    simulationResult: HoneypotSimulation | None = None
    honeypotResult: HoneypotVerdict | None = None

    model_config = {"extra": "ignore"}

    @property
    def is_honeypot(self) -> bool:
        return bool(self.honeypotResult and self.honeypotResult.isHoneypot)

    @property
    def sell_gas(self) -> int | None:
        if self.simulationResult is None or not self.simulationResult.sellGas:
            return None
        try:
            return int(self.simulationResult.sellGas)
        except ValueError:
            return None

    @property
    def buy_gas(self) -> int | None:
        if self.simulationResult is None or not self.simulationResult.buyGas:
            return None
        try:
            return int(self.simulationResult.buyGas)
        except ValueError:
            return None
