# events produced by the streaming decoders, in arrival order.
# a sequence always ends with exactly one Done or one Error.

from typing import Literal, Optional, Union
from pydantic import BaseModel


class TextDelta(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class Done(BaseModel):
    kind: Literal["done"] = "done"


class Error(BaseModel):
    kind: Literal["error"] = "error"
    message: str
    status_code: Optional[int] = None
    # "provider" when the backend reported the failure itself, "decode" when
    # the stream could not be understood
    source: Literal["decode", "provider"] = "decode"


DecodedEvent = Union[TextDelta, Done, Error]


def is_terminal(event: DecodedEvent) -> bool:
    return isinstance(event, (Done, Error))
