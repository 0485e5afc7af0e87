"""
Request and response shapes for the listing and prompt requests.

These models validate raw JSON-RPC results the way the server actually
sends them, which is looser than the SDK's own types: tool declarations may
lack a name (they are skipped during discovery, not rejected here) and
prompts may carry a ``template``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class McpRequest(BaseModel):
    """Generic JSON-RPC request body for an arbitrary method."""
    model_config = ConfigDict(extra="allow")

    method: str
    params: Optional[Dict[str, Any]] = None


# =============================================================================
# tools/list
# =============================================================================


class ToolDeclaration(BaseModel):
    """One entry of a tools/list result."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    parameters_json_schema: Optional[Dict[str, Any]] = Field(
        default=None, alias="parametersJsonSchema"
    )
    input_schema: Optional[Dict[str, Any]] = Field(default=None, alias="inputSchema")

    @property
    def effective_schema(self) -> Dict[str, Any]:
        """
        Input schema to register.

        Precedence: parametersJsonSchema, parameters, inputSchema, then an
        empty object schema.
        """
        for schema in (self.parameters_json_schema, self.parameters, self.input_schema):
            if schema is not None:
                return schema
        return {"type": "object", "properties": {}}


class ListToolsResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    tools: List[ToolDeclaration] = Field(default_factory=list)


# =============================================================================
# prompts/list
# =============================================================================


class PromptParameterProperty(BaseModel):
    type: str = "string"
    description: str = ""


class PromptParameters(BaseModel):
    type: Literal["object"] = "object"
    properties: Dict[str, PromptParameterProperty] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class PromptArgument(BaseModel):
    """MCP-standard prompt argument, used when ``parameters`` is absent."""
    model_config = ConfigDict(extra="allow")

    name: str
    description: Optional[str] = None
    required: Optional[bool] = None


class PromptDeclaration(BaseModel):
    """One entry of a prompts/list result."""
    model_config = ConfigDict(extra="allow")

    name: str
    title: Optional[str] = None
    description: str = ""
    template: Optional[str] = None
    parameters: Optional[PromptParameters] = None
    arguments: Optional[List[PromptArgument]] = None


class ListPromptsResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompts: List[PromptDeclaration] = Field(default_factory=list)


# =============================================================================
# prompts/get
# =============================================================================


class PromptMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant"]
    content: Any


class GetPromptResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: Optional[str] = None
    messages: List[PromptMessage] = Field(default_factory=list)
