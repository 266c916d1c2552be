"""Allow ``python -m replay_recorder``."""

from __future__ import annotations

import sys


def main() -> None:
    from replay_recorder import run
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
