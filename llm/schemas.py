from pydantic import BaseModel
from typing import List, Optional, Literal


Role = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    role: Role
    content: str


class CompletionRequest(BaseModel):
    model: str
    messages: List[ChatTurn]
    temperature: Optional[float] = None

    def to_openai_kwargs(self) -> dict:
        kwargs = {
            "model": self.model,
            "messages": [t.model_dump() for t in self.messages],
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        return kwargs
