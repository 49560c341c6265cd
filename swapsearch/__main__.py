import sys

from swapsearch.cli import main

sys.exit(main())
