'''
# Copyright 2025 Rowel Atienza. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

Request dispatcher for the Office Whisperer JSON-RPC server.

Methods:
    initialize  - protocol version, capabilities, server info
    tools/list  - every registered tool descriptor
    tools/call  - validate arguments, run the handler in a worker thread

Any other method, including a missing one, gets method-not-found.
Requests without an id are notifications and are never answered.
'''

import asyncio
from typing import Any, Optional

from . import PROTOCOL_VERSION, SERVER_NAME, __version__
from .protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    JsonRpcRequest,
    JsonRpcResponse,
    text_result,
)
from .registry import ToolRegistry
from .validation import InvalidParamsError, build_validator, validate_arguments

import logging
logger = logging.getLogger(__name__)


class UnknownToolError(LookupError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class Dispatcher:
    """Route JSON-RPC requests to the registry's tool handlers."""

    def __init__(self,
                 registry: ToolRegistry,
                 server_name: str = SERVER_NAME,
                 server_version: str = __version__,
                 protocol_version: str = PROTOCOL_VERSION):
        self.registry = registry
        self.server_name = server_name
        self.server_version = server_version
        self.protocol_version = protocol_version
        self._validators = {t.name: build_validator(t.input_schema) for t in registry}
        self._methods = {
            "initialize": self._initialize,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    async def handle_raw(self, raw: Any) -> Optional[dict]:
        """Handle one decoded JSON value; returns the response dict or None."""
        try:
            request = JsonRpcRequest.from_dict(raw)
        except ValueError as e:
            logger.error(f"Dropping invalid request: {e}")
            return None
        response = await self.handle(request)
        return response.to_dict() if response is not None else None

    async def handle(self, request: JsonRpcRequest) -> Optional[JsonRpcResponse]:
        if request.is_notification:
            logger.debug(f"Notification received: {request.method}")
            return None

        method = self._methods.get(request.method) if isinstance(request.method, str) else None
        if method is None:
            name = "undefined" if request.method is None else request.method
            return JsonRpcResponse.fail(request.id, METHOD_NOT_FOUND, f"Method not found: {name}")

        try:
            result = await method(request.params)
        except InvalidParamsError as e:
            logger.warning(str(e))
            return JsonRpcResponse.fail(request.id, INVALID_PARAMS, str(e), e.errors)
        except Exception as e:
            logger.error(f"Error handling {request.method}: {e}", exc_info=True)
            return JsonRpcResponse.fail(request.id, INTERNAL_ERROR, str(e))
        return JsonRpcResponse.success(request.id, result)

    async def _initialize(self, params: dict) -> dict:
        client = params.get("clientInfo")
        if not isinstance(client, dict):
            client = {}
        logger.info(f"Initialize from {client.get('name', 'unknown client')}")
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _list_tools(self, params: dict) -> dict:
        return {"tools": self.registry.list_tools()}

    async def _call_tool(self, params: dict) -> dict:
        name = params.get("name")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}

        item = self.registry.get(name) if isinstance(name, str) else None
        if item is None:
            raise UnknownToolError(name)
        if not isinstance(arguments, dict):
            raise InvalidParamsError(item.name, ["path= msg=arguments must be an object"])
        validate_arguments(item.name, self._validators[item.name], arguments)

        logger.info(f"Calling tool {item.name}")
        text = await asyncio.to_thread(item.handler, arguments)
        return text_result(text)
