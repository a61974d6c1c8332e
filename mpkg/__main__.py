import sys

from mpkg.cli import main

sys.exit(main())
