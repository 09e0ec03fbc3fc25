import sys

from mansplain.cli import main

sys.exit(main())
