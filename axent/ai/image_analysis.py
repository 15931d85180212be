"""
Image scanners: receipt, stock purchase and crypto purchase screenshots.

All three follow the same pipeline, implemented once in ``run_extraction``:
validate the image, prompt the multimodal model, pull the first JSON object
out of its reply and bounds-check the fields.
"""

import base64
import json
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from axent.ai.gateway import AIGateway
from axent.config import settings
from axent.errors import ValidationError, UpstreamError
from axent.utils.logger import get_logger

logger = get_logger(__name__)

MAX_EXTRACTED_AMOUNT = 1_000_000_000
_DATA_URL = re.compile(r"^data:(image/[a-z]+);base64,")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _allowed_types_message() -> str:
    return f"Invalid image type. Allowed: {', '.join(settings.ALLOWED_IMAGE_TYPES)}"


def _too_large_message() -> str:
    return f"Image too large. Maximum size is {settings.MAX_IMAGE_SIZE // 1024 // 1024}MB"


def decoded_size(b64_data: str) -> int:
    """Exact byte length of a base64 payload without decoding it"""
    data = b64_data.strip()
    padding = len(data) - len(data.rstrip("="))
    return len(data) * 3 // 4 - padding


def validate_data_url(data_url: Any) -> str:
    """Check a ``data:image/...;base64,`` URL; returns its MIME type"""
    if not data_url or not isinstance(data_url, str):
        raise ValidationError("Image data is required")
    if not data_url.startswith("data:image/"):
        raise ValidationError("Invalid image format: must be a base64 data URL")

    match = _DATA_URL.match(data_url)
    if not match or match.group(1) not in settings.ALLOWED_IMAGE_TYPES:
        raise ValidationError(_allowed_types_message())

    payload = data_url[match.end():]
    if not payload:
        raise ValidationError("Invalid base64 data")
    if decoded_size(payload) > settings.MAX_IMAGE_SIZE:
        raise ValidationError(_too_large_message())
    return match.group(1)


def validate_image_bytes(content: bytes, mime_type: Optional[str]) -> str:
    """Check an uploaded file; returns the data URL to send to the model"""
    if not content:
        raise ValidationError("No image provided")
    if len(content) > settings.MAX_IMAGE_SIZE:
        raise ValidationError(_too_large_message())

    mime_type = mime_type or "image/jpeg"
    if mime_type not in settings.ALLOWED_IMAGE_TYPES:
        raise ValidationError(_allowed_types_message())

    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number {name} in AI response")


def extract_first_json(text: str) -> Dict[str, Any]:
    """First JSON object embedded in free text (markdown fences allowed)"""
    cleaned = text.replace("```json", "").replace("```", "")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    start = cleaned.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(cleaned, start)
        except ValueError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = cleaned.find("{", start + 1)
    raise ValueError("No JSON object found in AI response")


def _number(data: Dict[str, Any], key: str, coerce: bool = False,
            upper: Optional[float] = MAX_EXTRACTED_AMOUNT) -> float:
    value = data.get(key)
    if coerce and isinstance(value, str):
        try:
            value = float(value.replace(",", ""))
        except ValueError:
            raise ValidationError(f"Invalid {key} in extracted data")
        data[key] = value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Invalid {key} in extracted data")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"Invalid {key} in extracted data")
    if value < 0 or (upper is not None and value > upper):
        raise ValidationError(f"Invalid {key} in extracted data")
    return value


def _date(data: Dict[str, Any], key: str):
    value = data.get(key)
    if value and not (isinstance(value, str) and _ISO_DATE.match(value)):
        raise ValidationError("Invalid date format")


def check_receipt(data: Dict[str, Any]) -> Dict[str, Any]:
    _number(data, "amount")
    _date(data, "date")
    return data


def check_stock_transaction(data: Dict[str, Any]) -> Dict[str, Any]:
    # the prompt asks for quoted numbers, so numeric strings are accepted
    for key in ("shares", "pricePerShare"):
        if data.get(key) is not None:
            _number(data, key, coerce=True)
    _date(data, "date")
    return data


def check_crypto_transaction(data: Dict[str, Any]) -> Dict[str, Any]:
    _number(data, "amount")
    # unit price in IDR; one BTC exceeds the amount cap
    if data.get("purchase_price") is not None:
        _number(data, "purchase_price", coerce=True, upper=None)
    _date(data, "purchase_date")
    return data


@dataclass
class ExtractionTask:
    name: str
    prompt: str
    validate: Callable[[Dict[str, Any]], Dict[str, Any]]
    user_text: Optional[str] = None
    as_system_prompt: bool = False
    temperature: float = 0.1
    max_tokens: Optional[int] = 500

    def build_messages(self, image_url: str):
        image_part = {"type": "image_url", "image_url": {"url": image_url}}
        if self.as_system_prompt:
            return [
                {"role": "system", "content": self.prompt},
                {"role": "user", "content": [{"type": "text", "text": self.user_text or ""}, image_part]},
            ]
        return [{"role": "user", "content": [{"type": "text", "text": self.prompt}, image_part]}]


RECEIPT_TASK = ExtractionTask(
    name="receipt",
    prompt="""You are a receipt analyzer. Extract transaction information from receipt images.
IMPORTANT: This is for EXPENSE tracking only.
Return a JSON object with this exact structure:
{
  "description": "short description of purchase",
  "amount": number (total amount),
  "category": "one of: food, transportation, shopping, bills, entertainment, health, education, other",
  "merchant": "store/merchant name",
  "date": "YYYY-MM-DD format",
  "time": "HH:MM:SS format (24-hour), if not visible use 12:00:00",
  "confidence": "high/medium/low"
}
CRITICAL: Always extract the time from receipt if visible. Look for timestamp, time printed on receipt.
If you cannot read the receipt clearly, set confidence to "low" and provide best estimates.""",
    user_text="Please analyze this receipt and extract the transaction information.",
    as_system_prompt=True,
    temperature=0.3,
    max_tokens=None,
    validate=check_receipt,
)

STOCK_TASK = ExtractionTask(
    name="stock transaction",
    prompt="""Analyze this stock transaction screenshot and extract the following information in JSON format ONLY (no additional text):
{
  "ticker": "stock ticker symbol (e.g., BBCA.JK for Jakarta stocks)",
  "name": "company name",
  "shares": "number of lots purchased",
  "pricePerShare": "price per share in IDR",
  "date": "transaction date in YYYY-MM-DD format"
}

If you cannot find certain information, use reasonable defaults:
- If ticker is not clear, try to infer from company name
- If lots not specified, default to 1
- If date is not found, use today's date
- Make sure ticker includes .JK suffix for Indonesian stocks

Return ONLY valid JSON, no markdown formatting or additional text.""",
    validate=check_stock_transaction,
)

CRYPTO_TASK = ExtractionTask(
    name="crypto transaction",
    prompt="""Analyze this crypto transaction screenshot and extract the following information in JSON format:
{
  "coin_name": "full cryptocurrency name (e.g., Bitcoin)",
  "symbol": "trading symbol in uppercase (e.g., BTC)",
  "coin_id": "lowercase identifier (e.g., bitcoin)",
  "amount": number (crypto amount purchased),
  "purchase_price": number (price per coin in local currency),
  "purchase_date": "YYYY-MM-DD format",
  "confidence": number (0-1, how confident you are about the extraction)
}

Important:
- Extract the EXACT values shown in the image
- For coin_id, convert the coin name to lowercase and replace spaces with hyphens
- For dates, convert to YYYY-MM-DD format
- Be precise with numbers, don't approximate
- If a field is unclear, set confidence lower and use your best estimate
- Currency should be converted/detected from the image""",
    validate=check_crypto_transaction,
)


async def run_extraction(gateway: AIGateway, task: ExtractionTask, image_url: str) -> Dict[str, Any]:
    """Prompt the model with an already-validated image and return checked fields"""
    logger.info(f"Analyzing {task.name} image")
    options = {"temperature": task.temperature}
    if task.max_tokens:
        options["max_tokens"] = task.max_tokens

    content = await gateway.complete_text(task.build_messages(image_url), **options)
    if not content:
        raise UpstreamError("No response from AI")

    try:
        data = extract_first_json(content)
    except ValueError as e:
        logger.error(f"Failed to parse AI response for {task.name}: {e}")
        raise UpstreamError(f"Failed to parse {task.name} data")

    return task.validate(data)
