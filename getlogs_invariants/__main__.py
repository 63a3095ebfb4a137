import sys

from getlogs_invariants.main import main

sys.exit(main())
