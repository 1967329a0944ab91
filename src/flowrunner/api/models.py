"""
API request models
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any, Union


class NodeDefinition(BaseModel):
    """Canvas node"""
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = Field(None, description="Node id, unique within the workflow")
    type: Optional[str] = Field(None, description="Node kind: trigger, action, logic or transform")
    kind: Optional[str] = Field(None, description="Alias of type")
    name: Optional[str] = Field(None, description="Node name, selects behavior")
    x: float = 0
    y: float = 0
    config: Dict[str, Any] = Field(default_factory=dict, description="Node configuration")


class ConnectionDefinition(BaseModel):
    """Directed connection between two nodes"""
    model_config = ConfigDict(populate_by_name=True)

    source: Union[int, str] = Field(..., alias="from", description="Source node id")
    target: Union[int, str] = Field(..., alias="to", description="Target node id")


class WorkflowDefinition(BaseModel):
    """Workflow snapshot submitted by the builder UI"""
    id: Optional[Union[int, str]] = Field(None, description="Workflow id")
    name: str = Field("", description="Workflow name")
    nodes: List[NodeDefinition] = Field(default_factory=list)
    connections: List[ConnectionDefinition] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_definition(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ExecutionRequest(BaseModel):
    """Run a workflow against an input payload"""
    model_config = ConfigDict(populate_by_name=True)

    workflow: WorkflowDefinition
    input_data: Dict[str, Any] = Field(default_factory=dict, alias="input")


class ClassifyRequest(BaseModel):
    error: str = Field(..., description="Error message to classify")


class WebhookRegistrationRequest(BaseModel):
    workflow: WorkflowDefinition
    node_id: Union[int, str]
    config: Dict[str, Any] = Field(default_factory=dict)
