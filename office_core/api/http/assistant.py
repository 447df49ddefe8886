from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from office_core.api.deps import get_assistant
from office_core.core.errors import AssistantAuthError, AssistantNetworkError
from office_core.domains.assistant.services import AssistantClient

router = APIRouter(prefix="/assistant", tags=["assistant"])


class CompletionRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    system: Optional[str] = None


class CompletionResponse(BaseModel):
    text: str


@router.post("/complete", response_model=CompletionResponse)
async def complete(
    completion: CompletionRequest,
    request: Request,
    assistant: AssistantClient = Depends(get_assistant)
):
    """Запрос к AI-ассистенту с ключом и моделью из настроек"""
    user_settings = request.app.state.user_settings
    try:
        text = await assistant.complete(
            completion.prompt,
            api_key=user_settings.anthropic_api_key,
            model=user_settings.ai_model,
            system=completion.system
        )
    except AssistantAuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except AssistantNetworkError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return CompletionResponse(text=text)
