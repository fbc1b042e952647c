import argparse

from .main import SERVERS, main


def cli() -> None:
    parser = argparse.ArgumentParser(prog="shipme", description="Run a ShipMe provider MCP server on stdio")
    parser.add_argument("provider", choices=sorted(SERVERS))
    args = parser.parse_args()
    main(args.provider)


if __name__ == "__main__":
    cli()
