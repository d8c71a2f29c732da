import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

from cmdr import cmdr

__prog__ = "hello-world"

console = Console()

hello = cmdr("hello-world <NAME>... -q, --question=<QUESTION> -v, --version -h, --help", shell=True)


def main():
    if os.environ.get("CMDR_DEBUG"):
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(console=Console(stderr=True))])

    usage, match = hello()

    if match.help:
        console.print(usage)
        sys.exit(0)

    if match.version:
        console.print("Version: 0.0.0")
        sys.exit(0)

    if not match.name:
        Console(stderr=True).print("Please, specify at least one <NAME>")
        sys.exit(1)

    *head, last = match.name
    names = " and ".join(filter(None, (", ".join(head), last)))
    console.print(f"Hello, {names}!", markup=False)

    if match.question:
        console.print(f"Here's a question: {match.question}", markup=False)


if __name__ == '__main__':
    main()
