"""
LangChain Adapter

Encapsulates all LangChain logic for the planner.
Exposes simple Python types only - NO LangChain objects leak out.

DESIGN RULES:
- LangChain stays INSIDE this module
- Returns (str, dict) tuple only - no LangChain types
- Errors propagate; callers decide on fallbacks

BOUNDARY:
    API ❌
    Executor ❌
    Providers ❌ (they own their own clients)
    Planner ✅  ← ONLY HERE
"""

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from langchain_community.callbacks import get_openai_callback
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import AzureChatOpenAI

from app.core.config import settings


def _get_llm(temperature: float, max_tokens: Optional[int]) -> AzureChatOpenAI:
    """Get configured AzureChatOpenAI instance."""
    return AzureChatOpenAI(
        azure_deployment=settings.azure_openai_deployment_name,
        openai_api_version=settings.azure_openai_api_version,
        azure_endpoint=settings.azure_openai_endpoint,
        api_key=settings.azure_openai_api_key,
        temperature=temperature,
        max_tokens=max_tokens,
    )


def build_messages(
    prompt: str,
    system_prompt: Optional[str] = None,
    history: Optional[Sequence[Dict[str, str]]] = None,
    image_urls: Optional[Sequence[str]] = None,
) -> List[BaseMessage]:
    """
    Build the LangChain message list.

    History turns use {"role": "user"|"assistant", "content": str}; other
    roles are skipped. Images are attached to the final user message.
    """
    messages: List[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))

    for turn in history or []:
        content = turn.get("content", "")
        if turn.get("role") == "user":
            messages.append(HumanMessage(content=content))
        elif turn.get("role") == "assistant":
            messages.append(AIMessage(content=content))

    if image_urls:
        parts: List[Any] = [{"type": "text", "text": prompt}]
        parts.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)
        messages.append(HumanMessage(content=parts))
    else:
        messages.append(HumanMessage(content=prompt))

    return messages


async def agenerate(
    prompt: str,
    system_prompt: Optional[str] = None,
    history: Optional[Sequence[Dict[str, str]]] = None,
    image_urls: Optional[Sequence[str]] = None,
    temperature: float = 0.2,
    max_tokens: Optional[int] = None,
) -> Tuple[str, Dict[str, Any]]:
    """
    Generate a response using LangChain AzureChatOpenAI.

    Args:
        prompt: The user's prompt
        system_prompt: Optional system prompt
        history: Prior conversation turns
        image_urls: Images the model should look at
        temperature: Sampling temperature
        max_tokens: Output token cap

    Returns:
        Tuple of (output_text, metadata)
        - metadata: dict with model, tokens_used, latency_ms, provider

    NO LANGCHAIN TYPES LEAK OUT - only Python primitives.
    """
    llm = _get_llm(temperature, max_tokens)
    messages = build_messages(prompt, system_prompt, history, image_urls)

    start_time = time.time()
    with get_openai_callback() as cb:
        response = await llm.ainvoke(messages)
        tokens_used = cb.total_tokens
    latency_ms = int((time.time() - start_time) * 1000)

    output = response.content if hasattr(response, "content") else str(response)

    metadata = {
        "model": settings.azure_openai_deployment_name,
        "tokens_used": tokens_used,
        "latency_ms": latency_ms,
        "provider": "langchain_azure",
    }

    return str(output), metadata
