from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List, Literal

from auth import UserScope, get_user_scope
from providers import BaseProvider, get_llm_provider
from services.chat_service import ChatService
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(min_length=1)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)


@router.post("")
async def chat(
    body: ChatRequest,
    scope: UserScope = Depends(get_user_scope),
    db: SupabaseRest = Depends(get_db),
    provider: BaseProvider = Depends(get_llm_provider),
):
    """Answer the conversation with the user's recent spending as context."""
    messages = [m.model_dump() for m in body.messages]
    reply = await ChatService.reply(db, scope.user_id, provider, messages)
    return {"success": True, "message": reply}
