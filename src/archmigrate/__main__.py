import sys

from archmigrate.cli import main

sys.exit(main())
