import contextlib
import logging
import sys
from collections.abc import AsyncIterator

from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from mailgun_mcp.config import get_host, get_port, is_test_mode
from mailgun_mcp.dynamic import DynamicMCPServer
from mailgun_mcp.mailgun_server import build_mcp_mailgun_server

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')

MESSAGES_PATH = "/messages/"


def build_sse_app(dynamic_server: DynamicMCPServer) -> Starlette:
    """Bind an MCP server to an SSE stream + message POST endpoint pair

    Args:
        dynamic_server: Server whose tools are exposed

    Returns:
        Starlette application serving /sse, /messages/ and /health
    """
    mcp_server = dynamic_server.get_server()
    endpoint_manager = dynamic_server.get_endpoint_manager()
    sse = SseServerTransport(MESSAGES_PATH)

    async def handle_sse(request: Request) -> Response:
        async with sse.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
            await mcp_server.run(
                read_stream,
                write_stream,
                mcp_server.create_initialization_options(),
            )
        return Response()

    async def health_handler(request: Request) -> JSONResponse:
        """Health check endpoint

        Args:
            request: Starlette request object

        Returns:
            JSON response with server health status
        """
        return JSONResponse({
            "status": "healthy",
            "server": dynamic_server.server_name,
            "tools_count": len(endpoint_manager.tools),
            "endpoints": endpoint_manager.list_endpoints(),
        })

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        tool_names = list(endpoint_manager.tools.keys())
        logging.info("[SSE] Available endpoints:")
        logging.info("[SSE]   - GET /sse (MCP event stream)")
        logging.info(f"[SSE]   - POST {MESSAGES_PATH} (MCP messages)")
        logging.info("[SSE]   - GET /health (Health check)")

        if not tool_names:
            logging.warning("[SSE] No tools available! Clients won't see any tools.")
        else:
            logging.info(f"[SSE] {len(tool_names)} tools ready")

        try:
            yield
        finally:
            logging.info("[SSE] Mailgun MCP Server shutting down...")

    return Starlette(
        debug=True,
        routes=[
            Route("/sse", endpoint=handle_sse, methods=["GET"]),
            Mount(MESSAGES_PATH, app=sse.handle_post_message),
            Route("/health", health_handler, methods=["GET"]),
        ],
        lifespan=lifespan,
    )


def main() -> None:
    port = get_port()
    host = get_host()

    try:
        dynamic_server = build_mcp_mailgun_server()
    except Exception as e:
        logging.exception(f"Fatal error in main(): {e}")
        if not is_test_mode():
            sys.exit(1)
        raise

    starlette_app = build_sse_app(dynamic_server)
    logging.info(f"Mailgun MCP SSE Server is running on http://{host}:{port}/sse")

    import uvicorn
    uvicorn.run(starlette_app, host=host, port=port)


if __name__ == "__main__":
    main()
