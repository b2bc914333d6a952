"""Tests for the GetWeather tool."""

from src.function_agent.config import INPUT_QUEUE_NAME, OUTPUT_QUEUE_NAME
from src.tools.weather_tool import TOOL_NAME, build_weather_tool, get_weather

QUEUE_SERVICE_URI = "https://mystorage.queue.core.windows.net"


class TestGetWeather:
    def test_weather_for_location(self):
        assert get_weather(location="Seattle") == "Weather is 74 degrees and sunny in Seattle"

    def test_location_is_embedded_verbatim(self):
        assert get_weather(location="São Paulo, BR").endswith("in São Paulo, BR")


class TestBuildWeatherTool:
    def test_single_definition(self):
        tool = build_weather_tool(QUEUE_SERVICE_URI)
        assert len(tool.definitions) == 1

    def test_function_schema(self):
        definition = build_weather_tool(QUEUE_SERVICE_URI).definitions[0]
        function = definition.azure_function.function
        assert function.name == TOOL_NAME == "GetWeather"
        assert function.parameters["properties"]["location"]["type"] == "string"

    def test_queue_bindings_match_trigger_queues(self):
        definition = build_weather_tool(QUEUE_SERVICE_URI).definitions[0]
        input_queue = definition.azure_function.input_binding.storage_queue
        output_queue = definition.azure_function.output_binding.storage_queue

        assert input_queue.queue_name == INPUT_QUEUE_NAME == "input"
        assert output_queue.queue_name == OUTPUT_QUEUE_NAME == "output"
        assert input_queue.storage_service_endpoint == QUEUE_SERVICE_URI
        assert output_queue.storage_service_endpoint == QUEUE_SERVICE_URI
