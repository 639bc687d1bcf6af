"""Exceptions raised for caller mistakes.

Expected per-item failures (unread blocks, stale ids, bad content) are never
raised; they are reported inside tool results.
"""


class ToolArgumentError(ValueError):
    """Tool arguments failed structural validation."""

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")


class UnknownToolError(KeyError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str, available: list[str]) -> None:
        self.tool_name = tool_name
        self.available = available
        super().__init__(f"Unknown tool {tool_name!r}. Available: {', '.join(available)}")

    def __str__(self) -> str:
        return str(self.args[0])
