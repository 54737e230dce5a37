"""Allow ``python -m iconsync``."""

import sys

from iconsync.cli import main

sys.exit(main())
