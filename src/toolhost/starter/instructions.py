"""Instructions sent to clients in the initialize result."""

SERVER_INSTRUCTIONS = """# toolhost starter server

A demonstration MCP server with tools, resources and prompts.

## Available Tools

### Greeting & Demos
- **hello**: Simple greeting - use to test connectivity
- **get_weather**: Returns simulated weather data
- **long_task**: Demonstrates progress reporting (takes ~5 seconds)

### LLM Interaction
- **ask_llm**: Invoke LLM sampling to ask questions (requires client support)

### Dynamic Features
- **load_bonus_tool**: Dynamically adds a calculator tool at runtime
- **bonus_calculator**: Available after calling load_bonus_tool

### Elicitation (User Input)
- **confirm_action**: Demonstrates form elicitation - requests user confirmation
- **get_feedback**: Demonstrates URL elicitation - opens feedback form in browser

## Available Resources

- **about://server**: Server information
- **doc://example**: Sample document
- **greeting://{name}**: Personalized greeting template
- **item://{id}**: Item data by ID

## Available Prompts

- **greet**: Generates a personalized greeting
- **code_review**: Structured code review prompt

## Recommended Workflows

1. **Testing Connection**: Call hello with your name to verify the server is responding
2. **Weather Demo**: Call get_weather with a location to see structured output
3. **Progress Demo**: Call long_task to see progress notifications
4. **Dynamic Loading**: Call load_bonus_tool, then refresh tools to see bonus_calculator
5. **Elicitation Demo**: Call confirm_action to see user confirmation flow
6. **URL Elicitation**: Call get_feedback to open a feedback form

## Tool Annotations

All tools include annotations indicating:
- Whether they modify state (readOnlyHint)
- If they're safe to retry (idempotentHint)
- Whether they access external systems (openWorldHint)

Use these hints to make informed decisions about tool usage."""
