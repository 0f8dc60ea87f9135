import sys

from scriptsvg.main import main

sys.exit(main())
