import asyncio
import logging
import sys

from mcp.server.stdio import stdio_server

from mailgun_mcp.config import is_test_mode
from mailgun_mcp.dynamic import DynamicMCPServer
from mailgun_mcp.mailgun_server import build_mcp_mailgun_server, tool_names

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')


async def run_stdio(dynamic_server: DynamicMCPServer) -> None:
    mcp_server = dynamic_server.get_server()
    async with stdio_server() as (read_stream, write_stream):
        logging.info("Mailgun MCP Server running on stdio")
        await mcp_server.run(
            read_stream,
            write_stream,
            mcp_server.create_initialization_options(),
        )


def main() -> None:
    try:
        dynamic_server = build_mcp_mailgun_server()

        if "--list-tools" in sys.argv:
            for name in tool_names(dynamic_server):
                logging.info(f"  - {name}")
            return

        asyncio.run(run_stdio(dynamic_server))
    except Exception as e:
        logging.exception(f"Fatal error in main(): {e}")
        if not is_test_mode():
            sys.exit(1)
        raise


if __name__ == "__main__":
    main()
