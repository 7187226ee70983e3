"""Starter resources and resource templates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolhost import __version__
from toolhost.lib import oj
from toolhost.protocol.errors import MCPError
from toolhost.registry.descriptor import ResourceDescriptor, ResourceTemplateDescriptor

if TYPE_CHECKING:
    from toolhost.server.server import MCPServer

ITEMS = {
    "1": {"id": "1", "name": "Widget", "description": "A useful widget"},
    "2": {"id": "2", "name": "Gadget", "description": "A fancy gadget"},
    "3": {"id": "3", "name": "Gizmo", "description": "A mysterious gizmo"},
}

ABOUT_TEXT = f"""toolhost v{__version__}

This is a feature-complete MCP server demonstrating:
- Tools with annotations and structured output
- Resources (static and dynamic)
- Resource templates
- Prompts with completions
- Sampling, elicitation, progress updates, and dynamic tool loading

For more information, visit: https://modelcontextprotocol.io"""

EXAMPLE_DOCUMENT = """# Example Document

This is an example markdown document served as an MCP resource.

## Features

- **Bold text** and *italic text*
- Lists and formatting
- Code blocks

```python
hello = "world"
```

## Links

- [MCP Documentation](https://modelcontextprotocol.io)"""


async def about(uri: str) -> str:
    return ABOUT_TEXT


async def example_document(uri: str) -> str:
    return EXAMPLE_DOCUMENT


async def greeting(uri: str, name: str) -> str:
    return f"Hello, {name}! This greeting was generated just for you."


async def item(uri: str, **variables: str) -> str:
    """Render one item as JSON; unknown ids are reported as missing resources."""
    data = ITEMS.get(variables["id"])
    if data is None:
        raise MCPError.resource_not_found(uri)
    return oj.dumps_pretty(data)


ABOUT = ResourceDescriptor(
    uri="about://server",
    name="About",
    description="Information about this MCP server",
    mime_type="text/plain",
)

EXAMPLE = ResourceDescriptor(
    uri="doc://example",
    name="Example Document",
    description="An example document resource",
    mime_type="text/markdown",
)

GREETING = ResourceTemplateDescriptor(
    uri_template="greeting://{name}",
    name="Personalized Greeting",
    description="A personalized greeting for a specific person",
    mime_type="text/plain",
)

ITEM = ResourceTemplateDescriptor(
    uri_template="item://{id}",
    name="Item Data",
    description="Data for a specific item by ID",
    mime_type="application/json",
    completions={"id": tuple(ITEMS)},
)


def register_resources(server: MCPServer) -> None:
    server.register_resource(ABOUT, about)
    server.register_resource(EXAMPLE, example_document)
    server.register_resource_template(GREETING, greeting)
    server.register_resource_template(ITEM, item)
