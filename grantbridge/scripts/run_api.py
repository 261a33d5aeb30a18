"""
Run the GrantBridge API server.

Usage:
    python -m grantbridge.scripts.run_api [--reload] [--port 5000]
"""

import argparse

from grantbridge.config import load_settings


def main():
    """Run the API server."""
    settings = load_settings()

    parser = argparse.ArgumentParser(description="Run GrantBridge API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    # Import here so --help works without the server stack
    import uvicorn

    uvicorn.run(
        "grantbridge.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
