import sys

from zxping.main import main

sys.exit(main())
