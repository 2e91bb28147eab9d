"""Allow ``python -m studypadi.cli`` execution."""

import sys

from studypadi.cli.commands import main

sys.exit(main())
