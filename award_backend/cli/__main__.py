import sys

from award_backend.cli import main

sys.exit(main())
