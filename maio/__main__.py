import sys

from maio.server import main

sys.exit(main())
