import sys

from search_provisioner.main import main

sys.exit(main())
