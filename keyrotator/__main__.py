"""Allow ``python -m keyrotator``."""

import sys

from keyrotator.cli import main

sys.exit(main())
