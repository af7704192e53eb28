"""Run the homeserve CLI with ``python -m homeserve.cli``."""

from __future__ import annotations

from .app import app


def main() -> None:  # pragma: no cover - console script hook
    app(prog_name="homeserve")


if __name__ == "__main__":  # pragma: no cover
    main()
