"""Console helpers shared by the example scripts."""

import logging
import sys
from typing import Any, NoReturn

from toolgate.llm.client import describe_content_blocks, dump_content


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def exit_with(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.exit(1)


def print_response(message: Any) -> None:
    print("Claude's response:")
    print("=" * 50)
    print("Full response content:")
    print(dump_content(message.content))
    print("\n" + "=" * 50)
    print("Detailed response breakdown:")
    for line in describe_content_blocks(message.content):
        print(line)
