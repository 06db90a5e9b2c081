# Parameter validation against the tool's JSON Schema
from typing import Any, Dict, List, NamedTuple

import jsonschema

from support_agent.domain.tool.tool_registry import ToolDefinition


class ValidationResult(NamedTuple):
    is_valid: bool
    errors: List[str]


class ToolParameterValidator:
    @staticmethod
    def validate_tool_call(tool: ToolDefinition, parameters: Dict[str, Any]) -> ValidationResult:
        try:
            jsonschema.validate(parameters, tool.input_schema)
            return ValidationResult(True, [])

        except jsonschema.ValidationError as e:
            return ValidationResult(False, [f"Schema validation failed: {e.message}"])
