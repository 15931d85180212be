"""
AI advisor endpoints: grounded chat and command execution
"""

from fastapi import APIRouter, Depends

from axent.ai.advisor import FinancialAdvisor
from axent.ai.command_executor import CommandExecutor
from axent.ai.gateway import AIGateway, get_ai_gateway
from axent.auth.supabase_auth import get_current_user_id
from axent.errors import AxentError, UpstreamError
from axent.schemas import ChatRequest, ChatResponse, CommandRequest
from axent.services.financial_data import FinancialRepository, get_repository
from axent.services.market_data import MarketDataService, get_market_data
from axent.services.price_enrichment import PriceEnricher
from axent.utils.logger import get_logger

logger = get_logger(__name__)

advisor_router = APIRouter(tags=["advisor"])

GENERIC_FAILURE = "Maaf, terjadi kesalahan. Silakan coba lagi."


@advisor_router.post("/financial-advisor-chat", response_model=ChatResponse)
async def financial_advisor_chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    repository: FinancialRepository = Depends(get_repository),
    market: MarketDataService = Depends(get_market_data),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    """Answer the conversation using fresh data for the verified user"""
    advisor = FinancialAdvisor(repository, PriceEnricher(market), gateway)
    messages = [m.model_dump() for m in request.messages]
    try:
        text = await advisor.reply(user_id, messages)
    except AxentError as e:
        if e.response is None:
            e.response = GENERIC_FAILURE
        raise
    except Exception as e:
        logger.error(f"Error in financial-advisor-chat function: {e}", exc_info=True)
        raise UpstreamError(str(e), GENERIC_FAILURE)
    return {"response": text}


@advisor_router.post("/ai-command-executor")
async def ai_command_executor(
    request: CommandRequest,
    user_id: str = Depends(get_current_user_id),
    repository: FinancialRepository = Depends(get_repository),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    executor = CommandExecutor(repository, gateway)
    try:
        return await executor.execute(user_id, request.message)
    except AxentError as e:
        if e.response is None:
            e.response = GENERIC_FAILURE
        raise
    except Exception as e:
        logger.error(f"Error in ai-command-executor function: {e}", exc_info=True)
        raise UpstreamError(str(e), GENERIC_FAILURE)
