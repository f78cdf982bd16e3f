import sys

from coursereview.cli import main

sys.exit(main())
