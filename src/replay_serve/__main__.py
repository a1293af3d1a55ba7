import sys

from replay_serve.cli import main

sys.exit(main())
