"""
Entry point for running the package as a module: python -m tutor_api
"""

import sys
from tutor_api.cli import main

if __name__ == "__main__":
    sys.exit(main())
