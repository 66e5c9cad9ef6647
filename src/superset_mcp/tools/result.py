"""Success/failure outcome every tool hands back to the MCP dispatcher."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    text: str

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, text: str) -> "ToolResult":
        return cls(ok=False, text=text)

    def render(self) -> str:
        """Text shown to the caller; failures carry an "Error: " prefix."""
        return self.text if self.ok else f"Error: {self.text}"


INITIALIZING = ToolResult.success("Initializing metadata cache, please try again shortly.")
