"""Allow ``python -m line_twin``."""

import sys

from line_twin.run import main

sys.exit(main())
