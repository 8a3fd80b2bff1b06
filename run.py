import sys

from naukri_refresh.app import main

if __name__ == "__main__":
    sys.exit(main())
