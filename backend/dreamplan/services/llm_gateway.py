"""OpenAI-compatible LLM gateway helpers."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import openai

from dreamplan.core.config import settings
from dreamplan.core.errors import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "llm_gateway"


def get_llm_client() -> openai.OpenAI:
    """Build a client for the configured gateway or fail on a missing key."""
    api_key = settings.llm_api_key
    if not api_key:
        raise ConfigurationError("LLM_API_KEY is not configured")
    return openai.OpenAI(
        api_key=api_key,
        base_url=settings.llm_base_url,
        timeout=settings.http_timeout_seconds,
        max_retries=0,
    )


def function_tool(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a JSON schema as a single function tool definition."""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": parameters,
        },
    }


def create_tool_call(
    messages: List[Dict[str, str]],
    tool: Dict[str, Any],
    *,
    client: Optional[openai.OpenAI] = None,
) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Run a completion that is forced to call ``tool``.

    Returns the decoded arguments of the first tool call (``None`` when the
    model answered in prose instead) together with the message text.
    """
    client = client or get_llm_client()
    tool_name = tool["function"]["name"]
    try:
        completion = client.chat.completions.create(
            model=settings.llm_model,
            messages=messages,
            tools=[tool],
            tool_choice={"type": "function", "function": {"name": tool_name}},
        )
    except openai.APIStatusError as exc:
        logger.error("LLM gateway error for %s: status=%s body=%s", tool_name, exc.status_code, exc.message)
        raise UpstreamServiceError(
            f"LLM gateway error: {exc.status_code}",
            service=SERVICE_NAME,
            status_code=exc.status_code,
        ) from exc
    except openai.APIError as exc:
        logger.error("LLM gateway request failed for %s: %s", tool_name, exc)
        raise UpstreamServiceError("LLM gateway request failed", service=SERVICE_NAME) from exc

    if not completion.choices:
        raise UpstreamServiceError("LLM gateway returned no choices", service=SERVICE_NAME)

    message = completion.choices[0].message
    content = message.content or ""
    tool_calls = message.tool_calls or []
    if not tool_calls:
        return None, content

    raw_arguments = tool_calls[0].function.arguments or "{}"
    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as exc:
        logger.error("LLM gateway returned malformed arguments for %s: %.200s", tool_name, raw_arguments)
        raise UpstreamServiceError("LLM gateway returned malformed tool arguments", service=SERVICE_NAME) from exc
    if not isinstance(arguments, dict):
        raise UpstreamServiceError("LLM gateway returned malformed tool arguments", service=SERVICE_NAME)
    return arguments, content


def create_chat_completion(
    messages: List[Dict[str, str]],
    *,
    client: Optional[openai.OpenAI] = None,
) -> Dict[str, Any]:
    """Plain chat completion returned in the OpenAI ``choices`` shape."""
    client = client or get_llm_client()
    try:
        completion = client.chat.completions.create(model=settings.llm_model, messages=messages)
    except openai.APIStatusError as exc:
        logger.error("LLM gateway chat error: status=%s body=%s", exc.status_code, exc.message)
        raise UpstreamServiceError(
            f"LLM gateway error: {exc.status_code}",
            service=SERVICE_NAME,
            status_code=exc.status_code,
        ) from exc
    except openai.APIError as exc:
        logger.error("LLM gateway chat request failed: %s", exc)
        raise UpstreamServiceError("LLM gateway request failed", service=SERVICE_NAME) from exc

    if not completion.choices:
        raise UpstreamServiceError("LLM gateway returned no choices", service=SERVICE_NAME)

    message = completion.choices[0].message
    return {
        "choices": [
            {
                "message": {
                    "role": message.role or "assistant",
                    "content": message.content or "",
                }
            }
        ]
    }
