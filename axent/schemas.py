from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


class ChatMessage(BaseModel):
    role: str
    content: Union[str, List[Dict[str, Any]]]


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    response: str


class CommandRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class ReceiptRequest(BaseModel):
    imageBase64: Optional[str] = None


class CryptoImageRequest(BaseModel):
    image: Optional[str] = None


class SymbolsRequest(BaseModel):
    # left loose so an empty or missing list gets the function's own 400 message
    symbols: Optional[List[str]] = None


class StockSearchRequest(BaseModel):
    query: Any = None


class ExchangeRateResponse(BaseModel):
    rate: float
    source: str
    timestamp: str


class CryptoPricesResponse(BaseModel):
    prices: Dict[str, float]


class StockPricesResponse(BaseModel):
    prices: Dict[str, float]
    timestamp: str
    source: str
    symbols_found: int
    symbols_requested: int
