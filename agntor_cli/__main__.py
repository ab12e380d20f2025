"""Allow ``python -m agntor_cli``."""

import sys

from agntor_cli.cli import main

sys.exit(main())
