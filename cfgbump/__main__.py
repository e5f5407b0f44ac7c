import sys

from cfgbump.cli import main

sys.exit(main())
