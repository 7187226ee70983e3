"""Tests for the capability registry and descriptors."""

import threading

import pytest

from toolhost.protocol.errors import UnknownCapability
from toolhost.registry import (
    CapabilityRegistrar,
    Icon,
    PromptArgument,
    PromptDescriptor,
    Registry,
    ResourceDescriptor,
    ResourceTemplateDescriptor,
    ToolAnnotations,
    ToolDescriptor,
)


async def handler_a(ctx, **kwargs):
    return "a"


async def handler_b(ctx, **kwargs):
    return "b"


@pytest.fixture
def tools():
    return Registry("tool")


class TestRegistry:
    """Tests for Registry mutation and lookup."""

    def test_lookup_returns_registered_entry(self, tools):
        descriptor = ToolDescriptor(name="echo")
        tools.register(descriptor, handler_a)
        entry = tools.lookup("echo")
        assert entry.descriptor is descriptor
        assert entry.handler is handler_a

    def test_lookup_unknown_raises(self, tools):
        with pytest.raises(UnknownCapability) as exc_info:
            tools.lookup("missing")
        assert exc_info.value.data == {"kind": "tool", "name": "missing"}

    def test_get_unknown_returns_none(self, tools):
        assert tools.get("missing") is None

    def test_reregister_overwrites_and_keeps_position(self, tools):
        tools.register(ToolDescriptor(name="first"), handler_a)
        tools.register(ToolDescriptor(name="second"), handler_a)
        replacement = ToolDescriptor(name="first", description="v2")
        tools.register(replacement, handler_b)

        assert [d.name for d in tools.list()] == ["first", "second"]
        entry = tools.lookup("first")
        assert entry.descriptor is replacement
        assert entry.handler is handler_b

    def test_unregister(self, tools):
        tools.register(ToolDescriptor(name="gone"), handler_a)
        assert tools.unregister("gone") is True
        assert "gone" not in tools
        assert tools.unregister("gone") is False

    def test_list_is_a_snapshot(self, tools):
        tools.register(ToolDescriptor(name="a"), handler_a)
        snapshot = tools.list()
        tools.register(ToolDescriptor(name="b"), handler_a)
        assert [d.name for d in snapshot] == ["a"]
        assert len(tools) == 2

    def test_iteration_survives_concurrent_register(self, tools):
        tools.register(ToolDescriptor(name="a"), handler_a)
        names = []
        for descriptor in tools:
            names.append(descriptor.name)
            tools.register(ToolDescriptor(name=f"added-{len(names)}"), handler_a)
        assert names == ["a"]

    def test_listing_is_stable(self, tools):
        for i in range(10):
            tools.register(ToolDescriptor(name=f"tool-{i}"), handler_a)
        first = [d.name for d in tools.list()]
        second = [d.name for d in tools.list()]
        assert first == second == [f"tool-{i}" for i in range(10)]

    def test_listeners_notified(self, tools):
        changes = []
        tools.on_change(changes.append)
        tools.register(ToolDescriptor(name="a"), handler_a)
        tools.unregister("a")
        assert changes == ["a", "a"]

    def test_listener_failure_does_not_block_register(self, tools):
        def broken(name):
            raise RuntimeError("boom")

        tools.on_change(broken)
        tools.register(ToolDescriptor(name="a"), handler_a)
        assert "a" in tools

    def test_concurrent_register_and_list(self, tools):
        """Writers on many threads never lose an entry or break a reader."""
        errors = []

        def writer(prefix):
            for i in range(200):
                tools.register(ToolDescriptor(name=f"{prefix}-{i}"), handler_a)

        def reader():
            try:
                for _ in range(200):
                    names = [d.name for d in tools.list()]
                    assert len(names) == len(set(names))
            except AssertionError as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
        threads += [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(tools) == 800


class TestCapabilityRegistrar:
    """Tests for the registrar handed to handlers."""

    def test_routes_to_each_registry(self):
        resources = Registry("resource")
        templates = Registry("resource_template")
        prompts = Registry("prompt")
        registrar = CapabilityRegistrar(
            tools=Registry("tool"),
            resources=resources,
            templates=templates,
            prompts=prompts,
        )
        registrar.register_tool(ToolDescriptor(name="t"), handler_a)
        registrar.register_resource(ResourceDescriptor(uri="a://b", name="ab"), handler_a)
        registrar.register_resource_template(
            ResourceTemplateDescriptor(uri_template="x://{id}", name="x"), handler_a
        )
        registrar.register_prompt(PromptDescriptor(name="p"), handler_a)

        assert registrar.has_tool("t")
        assert not registrar.has_tool("p")
        assert "a://b" in resources
        assert "x://{id}" in templates
        assert "p" in prompts


class TestDescriptors:
    """Tests for descriptor wire formats."""

    def test_tool_to_dict(self):
        descriptor = ToolDescriptor(
            name="hello",
            title="Say Hello",
            description="Greets",
            annotations=ToolAnnotations(title="Say Hello", read_only_hint=True, destructive_hint=False),
            icons=[Icon(src="data:image/png;base64,AA==", mime_type="image/png", sizes=("256x256",))],
        )
        data = descriptor.to_dict()
        assert data["name"] == "hello"
        assert data["title"] == "Say Hello"
        assert data["inputSchema"] == {"type": "object", "properties": {}}
        assert data["annotations"] == {"title": "Say Hello", "readOnlyHint": True, "destructiveHint": False}
        assert data["icons"] == [{"src": "data:image/png;base64,AA==", "mimeType": "image/png", "sizes": ["256x256"]}]
        assert "outputSchema" not in data

    def test_tool_requires_name(self):
        with pytest.raises(ValueError):
            ToolDescriptor(name="")

    def test_template_match(self):
        template = ResourceTemplateDescriptor(uri_template="greeting://{name}", name="Greeting")
        assert template.variables == ["name"]
        assert template.match("greeting://Ada%20L") == {"name": "Ada L"}
        assert template.match("greeting://a/b") is None
        assert template.match("item://1") is None

    def test_template_requires_variables(self):
        with pytest.raises(ValueError, match="no variables"):
            ResourceTemplateDescriptor(uri_template="about://server", name="About")

    def test_prompt_argument_lookup(self):
        prompt = PromptDescriptor(
            name="greet",
            arguments=[PromptArgument(name="name", required=True)],
        )
        assert prompt.argument("name").required
        assert prompt.argument("style") is None
        assert prompt.to_dict()["arguments"] == [{"name": "name", "description": "", "required": True}]
