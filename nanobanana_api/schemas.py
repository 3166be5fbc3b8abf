"""
Application data models
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """OpenAI-compatible chat completion request"""
    model: Optional[str] = None
    # 消息原样转发给上游，不做结构校验
    messages: Optional[List[Any]] = Field(default_factory=list)
    # 只有字面量 false 表示非流式
    stream: Any = True

    model_config = ConfigDict(extra="allow")

    @property
    def is_stream(self) -> bool:
        return self.stream is not False

    def upstream_messages(self) -> List[Any]:
        """Messages exactly as the caller sent them."""
        return list(self.messages or [])


class UpstreamPayload(BaseModel):
    """Body posted to the upstream chat API"""
    model: str
    messages: List[Any]
    domain: str
    cost: int = 0


class UpstreamResult(BaseModel):
    """Normalized upstream answer; absent fields default to empty."""
    content: str = ""
    reasoning: str = ""
    usage: Optional[Dict[str, Any]] = None


class Model(BaseModel):
    """Model information for listing"""
    id: str
    object: str = "model"
    created: int
    owned_by: str


class ModelsResponse(BaseModel):
    """Models list response model"""
    object: str = "list"
    data: List[Model]
