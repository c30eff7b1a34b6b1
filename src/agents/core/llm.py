"""
Generation collaborator contract.

Every stage that talks to a hosted model goes through LLM.complete(); concrete
providers live under infra/llm.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ChatMessage:
    role: str  # system|user|assistant
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class GenerationRequest:
    """
    One chat-completion call.
    purpose is a short label (discover, fetch, extract, ...) used for logging only;
    extra_body carries provider-specific parameters (e.g. search_domain_filter).
    """
    model: str
    messages: List[ChatMessage]
    temperature: float = 0.2
    max_tokens: int = 3000
    purpose: str = "generic"
    extra_body: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        payload.update(self.extra_body)
        return payload


@dataclass
class GenerationResult:
    text: str
    model: Optional[str] = None
    citations: List[str] = field(default_factory=list)
    attempts: int = 1


class LLM(ABC):
    """
    Defines the contract for all generation providers.
    """
    @abstractmethod
    async def complete(self, request: GenerationRequest) -> GenerationResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release provider resources. Default: nothing to release."""
        return None


def build_request(
    model: str,
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float = 0.2,
    max_tokens: int = 3000,
    purpose: str = "generic",
    extra_body: Optional[Dict[str, Any]] = None,
) -> GenerationRequest:
    """System + user message pair, the shape every pipeline stage sends."""
    return GenerationRequest(
        model=model,
        messages=[
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=user_prompt),
        ],
        temperature=temperature,
        max_tokens=max_tokens,
        purpose=purpose,
        extra_body=dict(extra_body or {}),
    )
