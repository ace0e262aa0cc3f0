import sys

from tidb_connect.cli import main

sys.exit(main())
