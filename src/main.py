"""Run script.

Why it exists:
- Allows `python -m main` from inside `src/` during development.
- Keeps a simple entry point next to the `isapi-migrate` console script.
"""

from __future__ import annotations

import sys

# Windows consoles default to cp1252; Rich output needs UTF-8.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
