from typing import Dict, List, Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ToolDefinition(BaseModel):
    """Immutable description of a tool exposed to the reasoning service"""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    category: str = "general"

    def to_function_spec(self) -> Dict[str, Any]:
        """OpenAI-style function spec accepted by chat model ``bind_tools``"""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


def _object_schema(**properties: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            key: {"type": "string", "description": description}
            for key, description in properties.items()
        },
        "required": list(properties),
    }


class ToolRegistry:
    """Registry for managing available tools"""

    def __init__(self):
        self.tools: Dict[str, ToolDefinition] = {}
        self.tool_categories: Dict[str, List[str]] = {}
        self._initialize_order_tools()

    def _initialize_order_tools(self):
        """Initialize with the order-management tools"""

        order_tools = [
            ToolDefinition(
                name="get_order_status",
                description="Fetch status and details for an order by order ID",
                category="orders",
                input_schema=_object_schema(orderId="The order ID to look up"),
            ),
            ToolDefinition(
                name="process_refund",
                description="Attempt to process a refund for a specific item",
                category="refunds",
                input_schema=_object_schema(
                    orderId="The order ID",
                    itemId="The item ID to refund",
                ),
            ),
            ToolDefinition(
                name="send_replacement",
                description="Issue a replacement for a wrong or damaged item",
                category="orders",
                input_schema=_object_schema(
                    orderId="The original order ID",
                    itemId="The item ID to replace",
                ),
            ),
            ToolDefinition(
                name="cancel_order",
                description="Cancel an entire order",
                category="orders",
                input_schema=_object_schema(orderId="The order ID to cancel"),
            ),
            ToolDefinition(
                name="verify_refund",
                description="Check the status of a refund by refund ID",
                category="refunds",
                input_schema=_object_schema(refundId="The refund ID to verify"),
            ),
            ToolDefinition(
                name="process_return",
                description="Log a return for a specific item",
                category="returns",
                input_schema=_object_schema(
                    orderId="The order ID",
                    itemId="The item ID to return",
                ),
            ),
            ToolDefinition(
                name="tier2_support_escalation",
                description="Escalate complex issues to Tier 2 support (simulates high latency)",
                category="support",
                input_schema=_object_schema(
                    issueSummary="Summary of the issue requiring escalation",
                ),
            ),
        ]

        for tool in order_tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition):
        """Register a new tool"""

        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name}")

        self.tools[tool.name] = tool

        if tool.category not in self.tool_categories:
            self.tool_categories[tool.category] = []
        self.tool_categories[tool.category].append(tool.name)

    def has_tool(self, name: str) -> bool:
        return name in self.tools

    async def get_available_tools(self) -> List[ToolDefinition]:
        """Get all available tools"""

        return list(self.tools.values())

    async def get_tool_info(self, name: str) -> Optional[ToolDefinition]:
        """Get information about a specific tool"""

        return self.tools.get(name)

    async def get_tools_by_category(self, category: str) -> List[ToolDefinition]:
        """Get tools by category"""

        names = self.tool_categories.get(category, [])
        return [self.tools[name] for name in names if name in self.tools]

    async def search_tools(self, query: str) -> List[ToolDefinition]:
        """Search tools by name or description"""

        query_lower = query.lower()
        matching_tools = []

        for tool in self.tools.values():
            if query_lower in tool.name.lower() or query_lower in tool.description.lower():
                matching_tools.append(tool)

        return matching_tools
