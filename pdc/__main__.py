import sys

from pdc.cli import main

sys.exit(main())
