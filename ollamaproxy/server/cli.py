import argparse

import httpx
import uvicorn

from ollamaproxy.server.app import create_app
from ollamaproxy.server.config import Settings


def _listen_address(listen: str) -> tuple[str, int]:
    url = httpx.URL(listen)
    return url.host or "0.0.0.0", url.port or 8080


def main():
    parser = argparse.ArgumentParser(prog="ollamaproxy")
    subparser = parser.add_subparsers(dest="command")
    serve = subparser.add_parser(name="serve")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--ollama-base", default=None)
    serve.add_argument("--debug", action="store_true")

    args = parser.parse_args()
    if args.command == "serve":
        overrides = {}
        if args.ollama_base:
            overrides["OLLAMA_BASE"] = args.ollama_base.rstrip("/")
        if args.debug:
            overrides["DEBUG"] = True
        settings = Settings(**overrides)

        host, port = _listen_address(settings.PROXY_LISTEN)
        uvicorn.run(
            create_app(settings),
            host=args.host or host,
            port=args.port or port,
            log_level="debug" if settings.DEBUG else "info",
        )
        return

    parser.print_help()


if __name__ == "__main__":
    main()
