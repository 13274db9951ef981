"""Tests for JSON-RPC dispatch: methods, errors and tools/call."""

import asyncio
import threading
import time
from pathlib import Path

import pytest

from office_whisperer import PROTOCOL_VERSION
from office_whisperer.protocol import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND
from office_whisperer.registry import ToolRegistry, ToolSet, tool
from office_whisperer.schema import object_schema, string
from office_whisperer.server import Dispatcher


def request(method, params=None, req_id=1):
    raw = {"jsonrpc": "2.0", "id": req_id, "method": method}
    if params is not None:
        raw["params"] = params
    return raw


class TestMethods:

    def test_initialize(self, rpc):
        response = rpc(request("initialize", {"clientInfo": {"name": "pytest"}}))
        result = response["result"]
        assert result["protocolVersion"] == PROTOCOL_VERSION
        assert result["capabilities"] == {"tools": {}}
        assert result["serverInfo"]["name"] == "office-whisperer"

    def test_initialize_ignores_odd_client_info(self, rpc):
        response = rpc(request("initialize", {"clientInfo": "pytest"}))
        assert response["result"]["protocolVersion"] == PROTOCOL_VERSION

    def test_tools_list(self, rpc):
        tools = rpc(request("tools/list"))["result"]["tools"]
        assert len(tools) == 141
        names = [t["name"] for t in tools]
        assert names[0] == "create_excel"
        assert len(set(names)) == len(names)
        for t in tools:
            assert set(t) == {"name", "description", "inputSchema"}
            assert t["inputSchema"]["type"] == "object"

    def test_create_excel_descriptor(self, rpc):
        tools = rpc(request("tools/list"))["result"]["tools"]
        create = next(t for t in tools if t["name"] == "create_excel")
        assert create["inputSchema"]["required"] == ["filename", "sheets"]

    def test_tools_list_is_stable(self, rpc):
        first = rpc(request("tools/list", req_id=1))["result"]
        second = rpc(request("tools/list", req_id=2))["result"]
        assert first == second

    def test_non_object_params_ignored(self, rpc):
        assert len(rpc(request("tools/list", []))["result"]["tools"]) == 141
        assert rpc(request("initialize", "hello"))["result"]["serverInfo"]["name"] == "office-whisperer"

    def test_unknown_method(self, rpc):
        response = rpc(request("resources/list"))
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert response["error"]["message"] == "Method not found: resources/list"

    def test_id_echoed(self, rpc):
        assert rpc(request("tools/list", req_id="abc"))["id"] == "abc"

    def test_notification_returns_nothing(self, rpc):
        assert rpc({"jsonrpc": "2.0", "method": "tools/list"}) is None

    @pytest.mark.parametrize("method", ["ping", "notifications/initialized", ""])
    def test_only_three_methods_answered(self, rpc, method):
        response = rpc(request(method))
        assert response["error"] == {"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"}

    def test_missing_method(self, rpc):
        response = rpc({"jsonrpc": "2.0", "id": 3, "params": {}})
        assert response["id"] == 3
        assert response["error"] == {"code": METHOD_NOT_FOUND, "message": "Method not found: undefined"}

    def test_non_string_method(self, rpc):
        response = rpc({"jsonrpc": "2.0", "id": 4, "method": 5})
        assert response["error"]["code"] == METHOD_NOT_FOUND

    def test_invalid_request_without_id_dropped(self, rpc):
        assert rpc(["not", "an", "object"]) is None


class TestToolsCall:

    def test_unknown_tool(self, rpc):
        response = rpc(request("tools/call", {"name": "excel_teleport", "arguments": {}}))
        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == "Unknown tool: excel_teleport"

    def test_missing_required_argument(self, rpc, tmp_path):
        response = rpc(request("tools/call", {"name": "create_excel", "arguments": {"filename": "x.xlsx"}}))
        assert response["error"]["code"] == INVALID_PARAMS
        assert "sheets" in response["error"]["message"]
        assert not (tmp_path / "x.xlsx").exists()

    def test_wrong_argument_type(self, rpc):
        response = rpc(request("tools/call", {
            "name": "excel_freeze_panes",
            "arguments": {"filename": "a.xlsx", "sheetName": "S", "row": "two"},
        }))
        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"]

    def test_array_formula_needs_cell_or_range(self, rpc, sample_workbook):
        before = Path(sample_workbook).read_bytes()
        response = rpc(request("tools/call", {
            "name": "excel_array_formulas",
            "arguments": {"filename": sample_workbook, "sheetName": "Sales", "formulas": [{"formula": "x"}]},
        }))
        assert response["error"]["code"] == INVALID_PARAMS
        assert Path(sample_workbook).read_bytes() == before

    @pytest.mark.parametrize("target", [{"cell": "E2"}, {"range": "E2:E4"}])
    def test_array_formula_accepts_cell_or_range(self, rpc, sample_workbook, target):
        response = rpc(request("tools/call", {
            "name": "excel_array_formulas",
            "arguments": {"filename": sample_workbook, "sheetName": "Sales",
                          "formulas": [{"formula": "SORT(C2:C4)", **target}]},
        }))
        assert "result" in response

    def test_arguments_must_be_object(self, rpc):
        response = rpc(request("tools/call", {"name": "create_excel", "arguments": [1, 2]}))
        assert response["error"]["code"] == INVALID_PARAMS

    def test_success_envelope(self, rpc, tmp_path):
        response = rpc(request("tools/call", {
            "name": "create_excel",
            "arguments": {
                "filename": "report.xlsx",
                "outputPath": str(tmp_path),
                "sheets": [{"name": "Data", "data": [[1, 2], [3, 4]]}],
            },
        }))
        content = response["result"]["content"]
        assert content[0]["type"] == "text"
        assert content[0]["text"].startswith("✅ **Excel workbook created!**")
        assert (tmp_path / "report.xlsx").exists()

    def test_domain_error_maps_to_internal_error(self, rpc, sample_workbook):
        response = rpc(request("tools/call", {
            "name": "excel_freeze_panes",
            "arguments": {"filename": sample_workbook, "sheetName": "Missing", "row": 1},
        }))
        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == 'Sheet "Missing" not found'


class SlowTools(ToolSet):
    """Tool set whose handler records how many calls overlap."""

    def __init__(self):
        super().__init__(generator=None, paths=None)
        self.active = 0
        self.peak = 0
        self.guard = threading.Lock()

    @tool("slow", "Sleep briefly", object_schema({"label": string()}))
    def slow(self, args):
        with self.guard:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.2)
        with self.guard:
            self.active -= 1
        return args.get("label", "")


class TestConcurrency:

    def test_calls_run_concurrently(self):
        tools = SlowTools()
        registry = ToolRegistry()
        registry.register_all(tools)
        dispatcher = Dispatcher(registry)

        async def run():
            return await asyncio.gather(*[
                dispatcher.handle_raw(request("tools/call", {"name": "slow", "arguments": {"label": str(i)}}, i))
                for i in range(3)
            ])

        responses = asyncio.run(run())
        assert [r["result"]["content"][0]["text"] for r in responses] == ["0", "1", "2"]
        assert tools.peak > 1
