"""Точка входа в приложение."""
import sys
from typing import Optional, Sequence

from imgforge.app import ImgForgeApp


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Создаёт и запускает консольное приложение."""
    app = ImgForgeApp()
    return app.run(argv)


if __name__ == "__main__":
    sys.exit(main())
