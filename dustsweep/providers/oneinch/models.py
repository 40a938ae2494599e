from pydantic import BaseModel, Field


class OneInchToken(BaseModel):
    address: str
    symbol: str = ""
    name: str = ""
    decimals: int = 18

    model_config = {"extra": "ignore"}


class OneInchTx(BaseModel):
    from_address: str = Field("", alias="from")
    to: str
    data: str
    value: str = "0"
    gas: int = 0
    gasPrice: str = "0"

    model_config = {"extra": "ignore", "populate_by_name": True}


class OneInchQuote(BaseModel):
    dstAmount: str
    srcToken: OneInchToken | None = None
    dstToken: OneInchToken | None = None
    protocols: list = []
    gas: int = 0

    model_config = {"extra": "ignore"}

    @property
    def protocol_names(self) -> list[str]:
        return _flatten_protocols(self.protocols)


class OneInchSwap(BaseModel):
    dstAmount: str
    srcToken: OneInchToken | None = None
    dstToken: OneInchToken | None = None
    protocols: list = []
    tx: OneInchTx

    model_config = {"extra": "ignore"}

    @property
    def protocol_names(self) -> list[str]:
        return _flatten_protocols(self.protocols)


def _flatten_protocols(protocols: list) -> list[str]:
    """Route hops arrive as nested lists of ``{name, part, ...}``; keep unique names in order."""
    names: list[str] = []
    stack = list(reversed(protocols))
    while stack:
        item = stack.pop()
        if isinstance(item, list):
            stack.extend(reversed(item))
        elif isinstance(item, dict) and item.get("name") and item["name"] not in names:
            names.append(item["name"])
    return names
