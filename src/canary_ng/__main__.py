import sys

from canary_ng.cli import main

sys.exit(main())
