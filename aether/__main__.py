import sys

from aether.cli import main

sys.exit(main())
