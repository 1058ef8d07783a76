import sys

from budget_indexer.cli import main

sys.exit(main())
