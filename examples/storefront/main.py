"""
Entry point.

Run: python -m examples.storefront.main
"""

from examples._infra import run
from examples.storefront.scenarios import (
    declined_then_retry,
    happy_path,
    history,
    slow_gateway,
    stock_drop,
)


async def main() -> None:
    await happy_path()
    await declined_then_retry()
    await stock_drop()
    await slow_gateway()
    await history()


if __name__ == "__main__":
    run(main)
