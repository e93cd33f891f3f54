import json
import os
import unittest
from unittest.mock import patch

import aiohttp
from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from mailgun_mcp.dynamic import EndpointManager, get_operation_details
from mailgun_mcp.dynamic.core import format_result
from mailgun_mcp.mailgun_server import generate_tools_from_openapi, load_openapi_spec

SEND_TOOL = "post--v3-domain_name-messages"
DOMAINS_TOOL = "get--v4-domains"
TAGS_TOOL = "get--v3-domain-tags"
IPS_TOOL = "get--v3-ips"
ROUTE_TOOL = "get--v3-routes-id-"
METRICS_TOOL = "post--v1-analytics-metrics"


class FakeMailgunTestCase(AioHTTPTestCase):
    """Runs tools against a local aiohttp app standing in for api.mailgun.net"""

    api_key = "key-test"

    async def get_application(self):
        self.received = []
        app = web.Application()
        app.router.add_post("/v3/{domain_name}/messages", self.send_message)
        app.router.add_get("/v4/domains", self.list_domains)
        app.router.add_get("/v3/{domain}/tags", self.forbidden)
        app.router.add_get("/v3/ips", self.not_json)
        app.router.add_get("/v3/routes/{id}", self.route_not_found)
        app.router.add_post("/v1/analytics/metrics", self.metrics)
        return app

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.openapi_spec = load_openapi_spec()
        self.manager = EndpointManager(
            self.openapi_spec,
            base_url=str(self.server.make_url("/")),
            api_key=self.api_key,
        )
        generate_tools_from_openapi(self.openapi_spec, self.manager)

    async def _record(self, request: web.Request) -> None:
        form = await request.post()
        self.received.append({
            "method": request.method,
            "path": request.path,
            "query": list(request.query.items()),
            "authorization": request.headers.get("Authorization"),
            "form": list(form.items()),
        })

    async def send_message(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"id": "<20240101.1@example.com>", "message": "Queued. Thank you."})

    async def list_domains(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"total_count": 1, "items": [{"name": "example.com", "state": "active"}]})

    async def metrics(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"items": []})

    async def forbidden(self, request: web.Request) -> web.Response:
        return web.Response(status=401, text="Forbidden")

    async def not_json(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="<html>maintenance</html>")

    async def route_not_found(self, request: web.Request) -> web.Response:
        return web.json_response({"message": "Route not found"}, status=404)


class TestEndpointManagerDispatch(FakeMailgunTestCase):

    async def test_send_message_posts_form_with_basic_auth(self):
        """POST tools send remaining arguments as a form body."""
        result = await self.manager.call_tool(SEND_TOOL, {
            "domain_name": "example.com",
            "from": "sender@example.com",
            "to": ["a@example.com", "b@example.com"],
            "subject": "Hello",
            "o:tag": ["welcome"],
        })

        self.assertTrue(result["success"], result["message"])
        self.assertEqual(result["status_code"], 200)
        self.assertEqual(result["data"]["message"], "Queued. Thank you.")
        self.assertEqual(result["message"], "✅ POST /v3/example.com/messages completed successfully")

        request = self.received[0]
        self.assertEqual(request["method"], "POST")
        self.assertEqual(request["path"], "/v3/example.com/messages")
        self.assertEqual(request["query"], [])
        self.assertEqual(request["authorization"], aiohttp.BasicAuth("api", self.api_key).encode())
        self.assertEqual(request["form"], [
            ("from", "sender@example.com"),
            ("to", "a@example.com"),
            ("to", "b@example.com"),
            ("subject", "Hello"),
            ("o:tag", "welcome"),
        ])

    async def test_get_sends_arguments_as_query_string(self):
        result = await self.manager.call_tool(DOMAINS_TOOL, {"limit": 10, "state": "active", "include_subaccounts": False})

        self.assertTrue(result["success"], result["message"])
        self.assertEqual(result["data"]["items"][0]["name"], "example.com")

        request = self.received[0]
        self.assertEqual(request["method"], "GET")
        self.assertEqual(request["query"], [("limit", "10"), ("state", "active"), ("include_subaccounts", "false")])
        self.assertEqual(request["form"], [])

    async def test_nested_json_body_is_form_encoded(self):
        result = await self.manager.call_tool(METRICS_TOOL, {
            "metrics": ["delivered_count", "opened_count"],
            "duration": "7d",
            "filter": {"AND": [{"attribute": "domain", "comparator": "=", "values": [{"value": "example.com"}]}]},
        })

        self.assertTrue(result["success"], result["message"])
        form = self.received[0]["form"]
        self.assertEqual([value for key, value in form if key == "metrics"], ["delivered_count", "opened_count"])
        self.assertEqual(dict(form)["duration"], "7d")
        self.assertEqual(
            json.loads(dict(form)["filter"]),
            {"AND": [{"attribute": "domain", "comparator": "=", "values": [{"value": "example.com"}]}]},
        )

    async def test_missing_path_argument_is_reported_by_name(self):
        result = await self.manager.call_tool(SEND_TOOL, {"from": "sender@example.com", "to": ["a@example.com"]})
        self.assertFalse(result["success"])
        self.assertIn("domain_name", result["message"])
        self.assertEqual(self.received, [])

    async def test_empty_path_argument_is_rejected(self):
        result = await self.manager.call_tool(SEND_TOOL, {
            "domain_name": "",
            "from": "sender@example.com",
            "to": ["a@example.com"],
        })
        self.assertFalse(result["success"])
        self.assertEqual(result["message"], "Required path parameter 'domain_name' is missing")

    async def test_invalid_arguments_are_rejected(self):
        result = await self.manager.call_tool(DOMAINS_TOOL, {"limit": 0})
        self.assertFalse(result["success"])
        self.assertIn("Invalid arguments", result["message"])
        self.assertEqual(self.received, [])

    async def test_error_status_with_plain_text_body(self):
        result = await self.manager.call_tool(TAGS_TOOL, {"domain": "example.com"})
        self.assertFalse(result["success"])
        self.assertEqual(result["status_code"], 401)
        self.assertEqual(result["message"], "Mailgun API error: Forbidden")

    async def test_error_status_with_json_message(self):
        result = await self.manager.call_tool(ROUTE_TOOL, {"id": "abc123"})
        self.assertFalse(result["success"])
        self.assertEqual(result["message"], "Mailgun API error: Route not found")

    async def test_unparseable_success_response(self):
        result = await self.manager.call_tool(IPS_TOOL, {})
        self.assertFalse(result["success"])
        self.assertTrue(result["message"].startswith("Failed to parse response"))

    async def test_unknown_tool(self):
        result = await self.manager.call_tool("get-nothing", {})
        self.assertEqual(result, {"success": False, "message": "Tool 'get-nothing' not found"})


class TestEndpointManagerWithoutServer(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.openapi_spec = load_openapi_spec()

    async def test_missing_api_key(self):
        manager = EndpointManager(self.openapi_spec)
        generate_tools_from_openapi(self.openapi_spec, manager, endpoints=("GET /v4/domains",))

        with patch.dict(os.environ, {"MAILGUN_API_KEY": ""}):
            result = await manager.call_tool(DOMAINS_TOOL, {})

        self.assertFalse(result["success"])
        self.assertIn("MAILGUN_API_KEY", result["message"])

    async def test_network_error_becomes_error_result(self):
        manager = EndpointManager(self.openapi_spec, base_url="http://127.0.0.1:1", api_key="key-test")
        generate_tools_from_openapi(self.openapi_spec, manager, endpoints=("GET /v4/domains",))

        result = await manager.call_tool(DOMAINS_TOOL, {})

        self.assertFalse(result["success"])
        self.assertTrue(result["message"].startswith("Request to Mailgun failed: "))
        self.assertTrue(format_result(result).startswith("Error: Request to Mailgun failed: "))

    def test_duplicate_tool_names_are_rejected(self):
        manager = EndpointManager(self.openapi_spec)
        details = get_operation_details(self.openapi_spec, "GET", "/v4/domains")
        manager.add_endpoint("GET", "/v4/domains", details)

        with self.assertRaises(ValueError):
            manager.add_endpoint("GET", "/v4/domains", details)

    def test_list_endpoints(self):
        manager = EndpointManager(self.openapi_spec)
        generate_tools_from_openapi(self.openapi_spec, manager, endpoints=("POST /v3/{domain_name}/messages",))

        self.assertEqual(manager.list_endpoints(), [{
            "name": SEND_TOOL,
            "method": "POST",
            "path": "/v3/{domain_name}/messages",
            "description": "Send an email",
            "required": ["domain_name", "from", "to"],
        }])


if __name__ == '__main__':
    unittest.main()
