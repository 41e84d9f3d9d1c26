from typing import Dict, AsyncGenerator, Union, List, Any, Callable, Optional
import asyncio
import json
import logging

from openai import AsyncOpenAI

from config import settings


logger = logging.getLogger(__name__)

# Models reported by the OpenAI-compatible runtime (populated at startup)
AVAILABLE_MODELS: List[str] = []

current_model = settings.LLM_MODEL

client: Optional[AsyncOpenAI] = None


def create_client(base_url: Optional[str] = None) -> AsyncOpenAI:
    """Create (or recreate) the module-global AsyncOpenAI client."""
    global client
    client = AsyncOpenAI(base_url=base_url or settings.LLM_BASE_URL, api_key=settings.LLM_API_KEY)
    return client


create_client()


async def fetch_available_models() -> List[str]:
    global AVAILABLE_MODELS
    try:
        response = await client.models.list()
        models = [getattr(m, "id", str(m)) for m in response.data]
        AVAILABLE_MODELS = models or [settings.LLM_MODEL]
    except Exception as e:
        logger.warning(f"Failed to list models from {settings.LLM_BASE_URL}: {e}")
        AVAILABLE_MODELS = [settings.LLM_MODEL]
    return AVAILABLE_MODELS


async def initialize_models():
    await fetch_available_models()
    logger.info(f"Assistant models: {AVAILABLE_MODELS}; current={current_model}")


def _accumulate_tool_calls(
    tool_calls_delta: List[Any],
    names: Dict[int, str],
    args_buffers: Dict[int, str],
    ids: Dict[int, str],
) -> None:
    # Streaming runtimes announce a call's name once and its arguments in fragments
    for tc in tool_calls_delta:
        idx = getattr(tc, "index", None)
        func = getattr(tc, "function", None)
        tc_id = getattr(tc, "id", None)
        if idx is None and isinstance(tc, dict):
            idx = tc.get("index")
            func = tc.get("function")
            tc_id = tc.get("id", tc_id)
        if idx is None:
            continue
        name_val = getattr(func, "name", None)
        args_val = getattr(func, "arguments", None)
        if isinstance(func, dict):
            name_val = name_val or func.get("name")
            args_val = args_val or func.get("arguments")
        if name_val:
            names[idx] = name_val
        if args_val:
            args_buffers[idx] = args_buffers.get(idx, "") + args_val
        if tc_id:
            ids[idx] = tc_id


async def generate_stream(
    prompt: str,
    system: str = "",
    temperature: float = 0.7,
    max_tokens: int = 1024,
    tools: Optional[List[Dict[str, Any]]] = None,
    execute_tool: Optional[Callable[[str, Dict[str, Any]], Any]] = None,
    max_tool_rounds: int = 10,
    # When provided, used as the chat messages instead of prompt/system
    seed_messages: Optional[List[Dict[str, Any]]] = None,
) -> AsyncGenerator[Union[str, Dict], None]:
    """
    Async generator over the assistant's reply.

    Yields ``{"type": "thinking"|"content", "content": str}`` chunks and, when the
    model calls functions, a ``{"type": "tool_calls", "tool_calls": [...]}`` event
    before executing them through ``execute_tool`` and continuing the conversation.
    """
    messages: List[Dict[str, Any]] = []
    if seed_messages:
        messages = list(seed_messages)
    else:
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

    try:
        round_index = 0
        while True:
            round_index += 1
            response = await client.chat.completions.create(
                model=current_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                tools=tools if tools else None,
                tool_choice="auto" if tools else None,
                stream=True,
            )

            tool_calls_args_buffers: Dict[int, str] = {}
            tool_calls_names: Dict[int, str] = {}
            tool_calls_ids: Dict[int, str] = {}
            any_content_this_round = False

            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if settings.DEBUG_STREAM:
                    logger.debug(f"[stream] chunk: {chunk.model_dump()}")

                reasoning_text = getattr(delta, "reasoning", None) or getattr(delta, "reasoning_content", None)
                content_text = getattr(delta, "content", None)
                if reasoning_text and not any_content_this_round:
                    yield {"type": "thinking", "content": reasoning_text}
                if content_text:
                    any_content_this_round = True
                    yield {"type": "content", "content": content_text}

                tool_calls_delta = getattr(delta, "tool_calls", None)
                if tool_calls_delta:
                    _accumulate_tool_calls(tool_calls_delta, tool_calls_names, tool_calls_args_buffers, tool_calls_ids)

            if tool_calls_names and execute_tool and round_index <= max_tool_rounds:
                tool_calls_list = []
                for idx, name in tool_calls_names.items():
                    tool_calls_list.append({
                        "id": tool_calls_ids.get(idx, f"call_{round_index}_{idx}"),
                        "type": "function",
                        "function": {"name": name, "arguments": tool_calls_args_buffers.get(idx) or "{}"},
                    })
                messages.append({"role": "assistant", "content": "", "tool_calls": tool_calls_list})

                yield {"type": "tool_calls", "tool_calls": [
                    {
                        "id": tc["id"],
                        "name": tc["function"]["name"],
                        "arguments": tc["function"]["arguments"],
                    } for tc in tool_calls_list
                ]}

                for tc in tool_calls_list:
                    fn = tc["function"]["name"]
                    try:
                        args = json.loads(tc["function"]["arguments"])
                    except json.JSONDecodeError:
                        logger.warning(f"Discarding malformed arguments for {fn}")
                        args = {}
                    # Blocking tool calls run in a worker thread
                    result = await asyncio.to_thread(execute_tool, fn, args)
                    messages.append({
                        "role": "tool",
                        "tool_call_id": tc["id"],
                        "content": json.dumps(result, ensure_ascii=False, default=str),
                    })
                continue

            if not any_content_this_round and not tool_calls_names:
                # Some runtimes only produce reasoning when streaming; ask once without streaming
                fallback = await client.chat.completions.create(
                    model=current_model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    stream=False,
                )
                content = fallback.choices[0].message.content or ""
                if content:
                    yield {"type": "content", "content": content}
            break

    except Exception:
        logger.exception(f"LLM request failed (model={current_model}, base={settings.LLM_BASE_URL})")
        raise


async def check_llm_status() -> Dict[str, Any]:
    """Reachability of the OpenAI-compatible runtime."""
    try:
        response = await client.models.list()
        models = [getattr(m, "id", str(m)) for m in response.data]
        return {
            "connected": True,
            "base_url": settings.LLM_BASE_URL,
            "model": current_model,
            "available_models": models,
        }
    except Exception as e:
        return {
            "connected": False,
            "error": str(e),
            "base_url": settings.LLM_BASE_URL,
            "model": current_model,
            "available_models": AVAILABLE_MODELS,
        }
