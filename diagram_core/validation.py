"""
Diagram validation - Check diagrams for structural issues.

Used by the editor session, the REST API and the CLI. Loading a file is
lenient (a connection to a missing shape is kept), so this is where such
problems surface and where a repair can be proposed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .commands import CompositeCommand, RemoveConnection

if TYPE_CHECKING:
    from .models import Diagram
    from .plugins import DiagramPlugin


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a diagram."""
    severity: IssueSeverity
    message: str
    shape_id: Optional[str] = None
    connection_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.shape_id:
            result["shape_id"] = self.shape_id
        if self.connection_id:
            result["connection_id"] = self.connection_id
        return result


def _label(shape) -> str:
    return shape.properties.get("name") or shape.id


def validate_diagram(diagram: "Diagram", plugin: Optional["DiagramPlugin"] = None) -> list[ValidationIssue]:
    """
    Validate a diagram and return a list of issues.

    Checks for:
    - Connection endpoints that reference missing shapes - ERROR
    - Shapes smaller than their minimum size - ERROR
    - Self-connections and duplicate connections - WARNING
    - Unnamed shapes - WARNING
    - Shape or connector types unknown to ``plugin`` - WARNING
    - Isolated shapes (no connections) - INFO
    - Empty diagram - INFO
    """
    issues: list[ValidationIssue] = []

    shapes = diagram.get_shapes()
    connections = diagram.get_connections()

    if not shapes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Diagram has no shapes"
        ))
        return issues

    shape_ids = {s.id for s in shapes}
    connected: set[str] = set()
    seen_pairs: dict[tuple, str] = {}

    for conn in connections:
        source_id = conn.source.shape_id
        target_id = conn.target.shape_id

        for end, shape_id in (("source", source_id), ("target", target_id)):
            if not shape_id or shape_id not in shape_ids:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Connection {end} '{shape_id}' does not exist",
                    connection_id=conn.id
                ))
            else:
                connected.add(shape_id)

        if source_id and source_id == target_id:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Connection connects a shape to itself",
                connection_id=conn.id,
                shape_id=source_id
            ))

        pair = (source_id, target_id, conn.type)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate {conn.type} connection (same as {seen_pairs[pair]})",
                connection_id=conn.id
            ))
        else:
            seen_pairs[pair] = conn.id

        if plugin is not None and plugin.connector_types() and not plugin.is_connector_tool(conn.type):
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Connector type '{conn.type}' is not part of {plugin.name}",
                connection_id=conn.id
            ))

    for shape in shapes:
        if shape.width < shape.min_width or shape.height < shape.min_height:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=(
                    f"Shape '{_label(shape)}' is {shape.width:g}x{shape.height:g}, "
                    f"below its minimum {shape.min_width:g}x{shape.min_height:g}"
                ),
                shape_id=shape.id
            ))

        if not str(shape.properties.get("name", "")).strip():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"{shape.type} shape has no name",
                shape_id=shape.id
            ))

        if plugin is not None and not plugin.is_shape_tool(shape.type):
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Shape type '{shape.type}' is not part of {plugin.name}",
                shape_id=shape.id
            ))

        if shape.id not in connected:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                message=f"Shape '{_label(shape)}' has no connections",
                shape_id=shape.id
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }


def repair_command(diagram: "Diagram") -> Optional[CompositeCommand]:
    """
    Build an undoable command that removes connections with missing endpoints.

    Returns None when there is nothing to repair.
    """
    dangling = [
        conn for conn in diagram.get_connections()
        if not (conn.source.shape_id and diagram.has_shape(conn.source.shape_id))
        or not (conn.target.shape_id and diagram.has_shape(conn.target.shape_id))
    ]
    if not dangling:
        return None
    return CompositeCommand(
        [RemoveConnection(diagram, conn.id) for conn in dangling],
        label=f"Remove {len(dangling)} dangling connection{'s' if len(dangling) != 1 else ''}",
    )
