import sys

from fai.cli.main import main

sys.exit(main())
