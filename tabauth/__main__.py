"""Allow running tabauth as a module: python -m tabauth."""

import sys

from .cli import main


sys.exit(main())
