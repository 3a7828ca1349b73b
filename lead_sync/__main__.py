"""``python -m lead_sync``: the sync CLI under the module's own program name."""
from __future__ import annotations

import sys

from . import cli

PROG = "python -m lead_sync"


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        return cli.main(args, prog=PROG)

    # A bare invocation is almost always someone looking for usage.
    cli.build_parser(prog=PROG).print_help()
    return 2


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
