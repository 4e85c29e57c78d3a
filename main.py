"""D&D LLM Chat — dev launcher. Starts the backend in watch mode."""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "8000")


def main():
    parser = argparse.ArgumentParser(description="D&D LLM Chat dev launcher")
    parser.add_argument("--host", default=HOST, help=f"Bind address (default: {HOST})")
    parser.add_argument("--port", default=PORT, help=f"Port (default: {PORT})")
    parser.add_argument("--provider", default=None,
                        help="LLM provider: auto, openai, anthropic, koboldcpp, mock, echo")
    parser.add_argument("--mock", action="store_true",
                        help="Use canned responses (same as --provider mock)")
    parser.add_argument("--log-level", default="info",
                        help="uvicorn log level (default: info)")
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload")
    args = parser.parse_args()

    # Build env for the subprocess so the backend picks up the chosen provider
    env = os.environ.copy()
    if args.mock:
        env["LLM_PROVIDER"] = "mock"
    elif args.provider:
        env["LLM_PROVIDER"] = args.provider

    cmd = [
        sys.executable, "-m", "uvicorn", "backend.app:app",
        "--host", args.host, "--port", str(args.port), "--log-level", args.log_level,
    ]
    if not args.no_reload:
        cmd.append("--reload")

    print(f"Starting D&D LLM Chat on http://localhost:{args.port} ...")
    proc = subprocess.Popen(cmd, cwd=ROOT, env=env)

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    proc.wait()


if __name__ == "__main__":
    main()
