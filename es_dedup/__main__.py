import sys
from es_dedup.app import main

sys.exit(main())
