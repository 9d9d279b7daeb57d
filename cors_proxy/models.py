from dataclasses import dataclass
from typing import AsyncIterator, Union


@dataclass(frozen=True)
class StreamedBody:
    """Upstream bytes relayed to the client as they arrive."""

    chunks: AsyncIterator[bytes]


@dataclass(frozen=True)
class LiteralBody:
    """A body known up front, such as a configured payload override."""

    content: bytes

    @classmethod
    def from_text(cls, text: str) -> "LiteralBody":
        return cls(content=text.encode("utf-8"))

    @property
    def content_length(self) -> int:
        return len(self.content)


UpstreamBody = Union[StreamedBody, LiteralBody]
