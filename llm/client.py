import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from app.config import Settings
from llm.schemas import ChatTurn, CompletionRequest


logger = logging.getLogger(__name__)

# Prompt files
PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
SYSTEM_PROMPT_PATH = PROMPTS_DIR / "system_v1.md"

EMPTY_REPLY_FALLBACK = "I'm not sure how to answer that."
STUB_REPLY = "Thanks for reaching out! A member of our team can help with that. Is there anything else I can look up for you?"


class CompletionProviderError(Exception):
    """The completion provider could not produce a reply (bad key, bad request, network)."""


# ---------------------------
# Generic prompt helpers
# ---------------------------
def load_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def render_template(template: str, vars: Dict[str, Any]) -> str:
    """
    Simple template renderer for {var} placeholders.
    """
    out = template
    for k, v in vars.items():
        out = out.replace("{" + k + "}", "" if v is None else str(v))
    return out


def load_system_prompt(store_name: str) -> str:
    return render_template(load_text(SYSTEM_PROMPT_PATH), {"store_name": store_name}).strip()


# ---------------------------
# Completion clients
# ---------------------------
class CompletionClient:
    def complete(self, messages: List[ChatTurn]) -> str:
        raise NotImplementedError


class OpenAICompletionClient(CompletionClient):
    """OpenAI Chat Completions. The SDK client is built on first use."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise CompletionProviderError("OPENAI_API_KEY is not set")
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def complete(self, messages: List[ChatTurn]) -> str:
        req = CompletionRequest(
            model=self.settings.openai_model,
            messages=messages,
            temperature=self.settings.openai_temperature,
        )
        client = self._get_client()

        try:
            response = client.chat.completions.create(**req.to_openai_kwargs())
        except OpenAIError as e:
            logger.error("Completion provider error type=%s msg=%s", type(e).__name__, e)
            raise CompletionProviderError(type(e).__name__) from e

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip() or EMPTY_REPLY_FALLBACK


class StubCompletionClient(CompletionClient):
    """Deterministic offline replies (LLM_MODE=stub)."""

    def __init__(self, reply: str = STUB_REPLY):
        self.reply = reply

    def complete(self, messages: List[ChatTurn]) -> str:
        return self.reply


def get_completion_client(settings: Settings) -> CompletionClient:
    """
    LLM_MODE:
      - openai: OpenAI Chat Completions
      - stub: fixed reply, no network
    """
    if settings.llm_mode == "stub":
        return StubCompletionClient()
    if settings.llm_mode == "openai":
        return OpenAICompletionClient(settings)
    raise ValueError(f"Unknown LLM_MODE {settings.llm_mode!r}. Expected 'openai' or 'stub'.")
