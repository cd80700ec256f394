"""Allow ``python -m tangle_export``."""

import sys

from .runner import main

sys.exit(main())
