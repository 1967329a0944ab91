"""
Workflow parser
"""
import yaml
import json
from typing import Dict, Any, Union
from pathlib import Path

from ..models.workflow import Workflow, Node, Connection, Position
from ..exceptions import WorkflowParseError


def parse_node_id(value: Any) -> Any:
    """Node ids are integers; numeric strings are converted"""
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value)
    return value


class WorkflowParser:
    """Builds Workflow objects from canvas exports (dict, JSON or YAML)"""

    def __init__(self):
        self.parsers = {
            'yaml': self._parse_yaml,
            'yml': self._parse_yaml,
            'json': self._parse_json
        }

    def parse(self, source: Union[str, Path, Dict[str, Any]]) -> Workflow:
        """
        Parse a workflow definition

        Args:
            source: a file path, a YAML/JSON string or a dict

        Returns:
            Workflow: the parsed workflow
        """
        if isinstance(source, Workflow):
            return source

        if isinstance(source, dict):
            return self.parse_dict(source)

        if isinstance(source, Path):
            return self.parse_file(source)

        if isinstance(source, str):
            path = Path(source)
            try:
                is_file = path.is_file()
            except OSError:
                is_file = False
            if is_file:
                return self.parse_file(path)
            return self.parse_string(source)

        raise WorkflowParseError(f"Unsupported source type: {type(source)}")

    def parse_file(self, file_path: Union[str, Path]) -> Workflow:
        """Parse a .json/.yaml/.yml workflow file"""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower().lstrip('.')
        if suffix not in self.parsers:
            raise WorkflowParseError(f"Unsupported file format: {suffix}")

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        data = self.parsers[suffix](content)
        return self.parse_dict(data)

    def parse_string(self, content: str) -> Workflow:
        """Parse a JSON or YAML string (YAML is a superset, JSON is tried first)"""
        for parse in (self._parse_json, self._parse_yaml):
            try:
                data = parse(content)
            except WorkflowParseError:
                continue
            if isinstance(data, dict):
                return self.parse_dict(data)

        raise WorkflowParseError("Failed to parse workflow string as YAML or JSON")

    def _parse_yaml(self, content: str) -> Dict[str, Any]:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise WorkflowParseError(f"Failed to parse YAML: {e}")

    def _parse_json(self, content: str) -> Dict[str, Any]:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise WorkflowParseError(f"Failed to parse JSON: {e}")

    def parse_dict(self, data: Dict[str, Any]) -> Workflow:
        """Parse a dict, optionally wrapped as {"workflow": {...}}"""
        if not isinstance(data, dict):
            raise WorkflowParseError(f"Workflow definition must be a mapping, got {type(data).__name__}")

        if 'workflow' in data and isinstance(data['workflow'], dict):
            data = data['workflow']

        nodes_data = data.get('nodes') or []
        connections_data = data.get('connections', data.get('edges')) or []
        if not isinstance(nodes_data, list) or not isinstance(connections_data, list):
            raise WorkflowParseError("'nodes' and 'connections' must be lists")

        workflow_kwargs = {
            'name': data.get('name', ''),
            'nodes': [self._parse_node(node_data) for node_data in nodes_data],
            'connections': [self._parse_connection(conn_data) for conn_data in connections_data],
            'metadata': data.get('metadata') or {}
        }
        if data.get('id') is not None:
            workflow_kwargs['id'] = str(data['id'])

        return Workflow(**workflow_kwargs)

    def _parse_node(self, data: Dict[str, Any]) -> Node:
        if not isinstance(data, dict):
            raise WorkflowParseError(f"Node definition must be a mapping, got {type(data).__name__}")

        position = data.get('position')
        if isinstance(position, dict):
            position = Position(x=position.get('x', 0), y=position.get('y', 0))
        else:
            position = Position(x=data.get('x', 0), y=data.get('y', 0))

        return Node(
            id=parse_node_id(data.get('id')),
            kind=data.get('kind', data.get('type')),
            name=data.get('name'),
            position=position,
            config=data.get('config') or {}
        )

    def _parse_connection(self, data: Dict[str, Any]) -> Connection:
        if not isinstance(data, dict):
            raise WorkflowParseError(f"Connection definition must be a mapping, got {type(data).__name__}")

        source = data.get('from', data.get('source'))
        target = data.get('to', data.get('target'))
        if source is None or target is None:
            raise WorkflowParseError(f"Connection is missing an endpoint: {data}")

        return Connection(
            source=parse_node_id(source),
            target=parse_node_id(target)
        )

    def serialize(self, workflow: Workflow, fmt: str = "dict") -> Union[Dict[str, Any], str]:
        """Convert a workflow back to a dict, JSON or YAML"""
        data = {
            'id': workflow.id,
            'name': workflow.name,
            'nodes': [self._node_dict(node) for node in workflow.nodes],
            'connections': [{'from': conn.source, 'to': conn.target} for conn in workflow.connections],
            'metadata': workflow.metadata
        }

        if fmt == "dict":
            return data
        if fmt == "json":
            return json.dumps(data, indent=2)
        if fmt in ("yaml", "yml"):
            return yaml.safe_dump(data, sort_keys=False)

        raise WorkflowParseError(f"Unsupported output format: {fmt}")

    def _node_dict(self, node: Node) -> Dict[str, Any]:
        return {
            'id': node.id,
            'type': node.kind,
            'name': node.name,
            'x': node.position.x,
            'y': node.position.y,
            'config': node.config
        }
