import sys

from naukri_refresh.app import main

sys.exit(main())
