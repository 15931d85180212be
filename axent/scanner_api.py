"""
Image scanner endpoints for receipts, stock buys and crypto buys
"""

from fastapi import APIRouter, Depends, File, UploadFile

from axent.ai.gateway import AIGateway, get_ai_gateway
from axent.ai.image_analysis import (
    RECEIPT_TASK, STOCK_TASK, CRYPTO_TASK,
    run_extraction, validate_data_url, validate_image_bytes,
)
from axent.auth.supabase_auth import get_current_user_id
from axent.errors import AxentError, UpstreamError, ValidationError
from axent.schemas import ReceiptRequest, CryptoImageRequest
from axent.utils.logger import get_logger

logger = get_logger(__name__)

scanner_router = APIRouter(tags=["scanners"])


@scanner_router.post("/analyze-receipt")
async def analyze_receipt(
    request: ReceiptRequest,
    user_id: str = Depends(get_current_user_id),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    validate_data_url(request.imageBase64)
    logger.info(f"Analyzing receipt for user: {user_id}")
    try:
        data = await run_extraction(gateway, RECEIPT_TASK, request.imageBase64)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in analyze-receipt function: {e}", exc_info=True)
        raise UpstreamError("Failed to analyze receipt")
    return {"success": True, "data": data}


@scanner_router.post("/analyze-stock-transaction")
async def analyze_stock_transaction(
    image: UploadFile = File(None),
    user_id: str = Depends(get_current_user_id),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    if image is None:
        raise ValidationError("No image provided")

    content = await image.read()
    image_url = validate_image_bytes(content, image.content_type)
    logger.info(f"Processing stock transaction image for user: {user_id} {image.filename}")
    try:
        return await run_extraction(gateway, STOCK_TASK, image_url)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error analyzing stock transaction: {e}", exc_info=True)
        raise UpstreamError("Failed to analyze stock transaction")


@scanner_router.post("/analyze-crypto-transaction")
async def analyze_crypto_transaction(
    request: CryptoImageRequest,
    user_id: str = Depends(get_current_user_id),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    validate_data_url(request.image)
    logger.info(f"Analyzing crypto transaction image for user: {user_id}")
    try:
        return await run_extraction(gateway, CRYPTO_TASK, request.image)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in analyze-crypto-transaction function: {e}", exc_info=True)
        raise UpstreamError("Failed to analyze crypto transaction image")
