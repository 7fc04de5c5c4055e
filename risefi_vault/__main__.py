"""Allow running the package as a module: python -m risefi_vault"""

import sys

from risefi_vault.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
