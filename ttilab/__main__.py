from __future__ import annotations

from ttilab.cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
