"""Entry point de desarrollo (sin instalar el paquete).

Permite ejecutar la CLI con:
- `python -m main diff /2.29 /dev -b https://play.example.org -g ""`

Motivo:
- El código vive en `src/` y sus paquetes (`cli`, `core`, `adapters`) no
  están en `sys.path` hasta hacer `pip install -e .`.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    # Rich imprime tablas con caracteres unicode; en consolas cp1252 falla.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
