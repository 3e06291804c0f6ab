"""Allow ``python -m mare_website``."""

import sys

from mare_website.cli import main

sys.exit(main())
