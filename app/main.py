# app/main.py
import logging
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.config import Settings, get_settings
from app.graph import build_graph
from app.models import ChatRequest, ChatResponse
from llm.client import CompletionClient, CompletionProviderError, get_completion_client
from policies.intent import get_intent_policy
from tools.logs import log_action
from tools.orders import OrderLookupClient


logger = logging.getLogger(__name__)

EMPTY_MESSAGE_REPLY = "No message provided."
INVALID_BODY_REPLY = "Invalid request body."
PROVIDER_ERROR_REPLY = "Sorry, I'm having trouble answering right now. Please try again in a moment."
INTERNAL_ERROR_REPLY = "Error processing request."


def _reply(status_code: int, reply: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ChatResponse(reply=reply).model_dump())


def create_app(
    settings: Optional[Settings] = None,
    order_client: Optional[OrderLookupClient] = None,
    completion_client: Optional[CompletionClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    order_client = order_client or OrderLookupClient(settings)
    completion_client = completion_client or get_completion_client(settings)

    graph = build_graph(
        settings=settings,
        order_client=order_client,
        completion_client=completion_client,
        intent_policy=get_intent_policy(settings.intent_policy),
    )

    app = FastAPI(title=f"{settings.store_name} AI Backend")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_headers=["*"],
        allow_methods=["*"],
    )

    def _log(rid: str, event_type: str, payload: dict) -> None:
        log_action(rid, event_type, payload, backend=settings.action_log_backend)

    if not settings.order_lookup_configured:
        logger.warning("BigCommerce env vars missing; order questions will get a 'lookup unavailable' reply")

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return _reply(400, INVALID_BODY_REPLY)

    @app.get("/", response_class=PlainTextResponse)
    def home():
        return f"{settings.store_name} AI Backend is running!"

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/ai/chat", response_model=ChatResponse)
    def chat(req: ChatRequest, request: Request):
        """
        - 400 when the message is empty after trimming
        - 413 when it is longer than MAX_MESSAGE_CHARS
        - 500 with a generic reply when the completion provider or the pipeline fails
        """
        rid = uuid.uuid4().hex[:12]
        msg = req.message.strip()

        if not msg:
            return _reply(400, EMPTY_MESSAGE_REPLY)

        if len(msg) > settings.max_message_chars:
            _log(
                rid,
                "blocked_request",
                {
                    "reason": "message_too_long",
                    "length": len(msg),
                    "max": settings.max_message_chars,
                    "ip": request.client.host if request.client else "unknown",
                },
            )
            return _reply(413, f"Message too long. Max is {settings.max_message_chars} chars.")

        state = {
            "message": msg,
            "request_id": rid,
            "actions": [],
            "reply": "",
        }

        try:
            out = graph.invoke(state)
        except CompletionProviderError as e:
            _log(rid, "error", {"where": "compose", "error": str(e)})
            return _reply(500, PROVIDER_ERROR_REPLY)
        except Exception as e:
            logger.exception("Chat pipeline failed")
            _log(rid, "error", {"where": "graph", "error": type(e).__name__})
            return _reply(500, INTERNAL_ERROR_REPLY)

        return ChatResponse(reply=out.get("reply", ""))

    return app


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_configure_logging(get_settings())
app = create_app()


if __name__ == "__main__":
    s = get_settings()
    logger.info("API running on port %s", s.port)
    uvicorn.run(app, host="0.0.0.0", port=s.port)
