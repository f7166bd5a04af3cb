#!/usr/bin/env python3
"""
Backend startup wrapper.

Usage:
    python -m marketplace.start_backend [--host 0.0.0.0] [--port 8000]
"""
import argparse
import sys

import uvicorn


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the marketplace API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    print("[Backend] Starting marketplace backend")
    print(f"[Backend] Server: http://{args.host}:{args.port}")
    print("[Backend] Press CTRL+C to stop")

    try:
        uvicorn.run(
            "marketplace.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[Backend] Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
