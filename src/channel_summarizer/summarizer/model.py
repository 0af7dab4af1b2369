"""Model collaborator: system prompt + JSON payload in, JSON text out."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import openai
from langchain_core.messages import HumanMessage, SystemMessage

from channel_summarizer.logging import format_log_context, get_logger, truncate_log_text

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

logger = get_logger(__name__)

CONTEXT_LENGTH_EXCEEDED = "context_length_exceeded"


@dataclass(frozen=True)
class ModelReply:
    text: str
    total_tokens: int = 0


class ContextLengthExceeded(Exception):
    """The prompt did not fit into the model's context window."""


class ModelCallFailed(Exception):
    """Any other failure of the model call (transport, API, timeout)."""


class SummaryModel(ABC):
    """A single non-streaming completion returning a JSON object."""

    @abstractmethod
    async def complete(self, system: str, payload: str, user_id: int) -> ModelReply:
        """Run the completion.

        Raises:
            ContextLengthExceeded: Prompt too long for the model.
            ModelCallFailed: Anything else went wrong.
        """

    async def close(self) -> None:
        """Release client resources."""


def _is_context_length_error(error: BaseException) -> bool:
    if getattr(error, "code", None) == CONTEXT_LENGTH_EXCEEDED:
        return True
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        if body.get("code") == CONTEXT_LENGTH_EXCEEDED:
            return True
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("code") == CONTEXT_LENGTH_EXCEEDED:
            return True
    return False


class LangChainSummaryModel(SummaryModel):
    """SummaryModel on top of a LangChain chat model (ChatOpenAI)."""

    def __init__(self, chat_model: BaseChatModel, timeout: float | None = None) -> None:
        self.chat_model = chat_model
        self.timeout = timeout

    async def complete(self, system: str, payload: str, user_id: int) -> ModelReply:
        bound = self.chat_model.bind(
            response_format={"type": "json_object"},
            user=str(user_id),
        )
        messages = [SystemMessage(content=system), HumanMessage(content=payload)]
        ctx = format_log_context("model_call", component="summarizer", user=user_id)

        try:
            response = await asyncio.wait_for(bound.ainvoke(messages), timeout=self.timeout)
        except openai.BadRequestError as e:
            if _is_context_length_error(e):
                logger.warning(f"{ctx} context_length_exceeded")
                raise ContextLengthExceeded(str(e)) from e
            logger.error(f'{ctx} bad_request error="{truncate_log_text(str(e))}"')
            raise ModelCallFailed(str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error(f"{ctx} timeout after {self.timeout}s")
            raise ModelCallFailed("model call timed out") from e
        except Exception as e:
            logger.error(f'{ctx} failed type={type(e).__name__} error="{truncate_log_text(str(e))}"')
            raise ModelCallFailed(str(e)) from e

        content = response.content if isinstance(response.content, str) else ""
        usage = getattr(response, "usage_metadata", None) or {}
        total_tokens = int(usage.get("total_tokens") or 0)
        logger.info(f'{ctx} done tokens={total_tokens} text="{truncate_log_text(content)}"')
        return ModelReply(text=content, total_tokens=total_tokens)
