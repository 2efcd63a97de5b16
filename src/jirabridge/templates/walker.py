"""
Deep Template Walker.

Renders every string inside an arbitrary configuration tree, such as the
custom ``fields`` of a receiver:

    fields:
      customfield_10001: '{{ group_labels.team }}'
      customfield_10002: [{value: '{{ common_labels.env }}'}]
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from jirabridge.templates.engine import RenderError


@dataclass
class WalkResult:
    """Outcome of rendering a value tree.

    Attributes:
        value: Rendered tree, same shape as the input
        errors: Render failures, in walk order
    """

    value: Any
    errors: list[RenderError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Check if every leaf rendered."""
        return not self.errors


def render_tree(value: Any, render: Callable[[str], str]) -> WalkResult:
    """Render every string leaf and mapping key of a value tree.

    Mappings come back as dicts with string keys; entries whose key is not a
    string are dropped. Sequences keep order and length. Other scalars (None,
    bools, numbers) are returned unchanged. A leaf that fails to render
    becomes "" and its error is collected.

    Args:
        value: Tree of None/bool/int/float/str/list/tuple/dict
        render: Renders one template string, raising RenderError on failure

    Returns:
        WalkResult with the rendered tree and collected errors
    """
    errors: list[RenderError] = []

    def render_leaf(text: str) -> str:
        try:
            return render(text)
        except RenderError as e:
            errors.append(e)
            return ""

    def walk(node: Any) -> Any:
        if isinstance(node, str):
            return render_leaf(node)
        elif isinstance(node, (list, tuple)):
            return [walk(item) for item in node]
        elif isinstance(node, dict):
            # Non-string keys cannot become Jira field names and are dropped
            return {
                render_leaf(key): walk(item)
                for key, item in node.items()
                if isinstance(key, str)
            }
        else:
            return node

    return WalkResult(value=walk(value), errors=errors)
