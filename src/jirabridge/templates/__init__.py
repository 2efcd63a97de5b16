"""
jirabridge - Templates

Jinja2 rendering of receiver configuration against alert groups:

- TemplateSet: parsed named and inline templates, shared across runs
- Renderer: per-run handle that keeps the first render error
- render_tree: renders every string of a nested configuration value
"""

from jirabridge.templates.engine import RenderError, Renderer, TemplateSet
from jirabridge.templates.walker import WalkResult, render_tree

__all__ = [
    "RenderError",
    "Renderer",
    "TemplateSet",
    "WalkResult",
    "render_tree",
]
