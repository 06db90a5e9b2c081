"""
Exception hierarchy for the agent domain
"""


class AgentError(Exception):
    """Base class for agent errors"""


class TransientToolError(AgentError):
    """Raised by a backend handler when a retryable upstream fault occurs"""


class UnknownToolError(AgentError):
    """Raised when a tool name is not in the registry"""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ReasoningServiceError(AgentError):
    """Raised when the reasoning service fails or breaks its contract"""
