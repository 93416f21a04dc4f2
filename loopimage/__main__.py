import sys

from loopimage.cli import main

sys.exit(main())
