"""Allow running as: python -m wavedev"""

import sys

from wavedev.cli import main

sys.exit(main())
