"""Allow ``python -m mezastar_helper``."""

from __future__ import annotations

import sys


def main() -> None:
    from mezastar_helper import run
    raise SystemExit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
