"""Tests for the LangChain wrappers around ToolInvoker."""

import json

from langchain_core.tools import StructuredTool

from rx_tools.bridge import auto_prompt_instructions, invoker_to_langchain_tool, load_langchain_tools


class TestLangChainTools:
    def test_discovery_wraps_every_tool(self, echo_invoker) -> None:
        tools = load_langchain_tools(echo_invoker)

        assert [t.name for t in tools] == ["echo"]
        assert isinstance(tools[0], StructuredTool)
        assert "Echoes back" in tools[0].description

    def test_call_goes_through_helper(self, echo_invoker) -> None:
        [schema] = echo_invoker.list_tools()
        tool = invoker_to_langchain_tool(echo_invoker, "echo", schema=schema)

        output = tool.invoke({"message": "hello"})

        assert json.loads(output)["echoed"] == "hello"

    def test_failure_is_returned_as_text(self, make_invoker) -> None:
        invoker = make_invoker("error")
        tool = invoker_to_langchain_tool(
            invoker,
            "check_dose",
            description="Validate a dose",
            schema={"parameters": {"type": "object", "properties": {"dose_mg": {"type": "number"}}}},
        )

        output = tool.invoke({"dose_mg": 0})

        assert output.startswith("Error calling check_dose (tool_error)")
        assert "bad input" in output


def test_auto_prompt_instructions() -> None:
    text = auto_prompt_instructions(
        {
            "name": "check_dose",
            "description": "Validate a dose",
            "parameters": {
                "type": "object",
                "properties": {
                    "medication": {"type": "string", "description": "Drug name"},
                    "dose_mg": {"type": "number", "description": "Dose in mg"},
                },
                "required": ["medication"],
            },
        }
    )
    assert text.splitlines() == [
        "## Tool: check_dose",
        "Validate a dose",
        "",
        "Parameters:",
        "  - medication (string, required): Drug name",
        "  - dose_mg (number): Dose in mg",
    ]
