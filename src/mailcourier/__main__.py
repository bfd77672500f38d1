# =============================================================================
# mailcourier Entry Point for `python -m mailcourier`
# =============================================================================
# Equivalent to running the 'mailcourier' command after installation.
# =============================================================================

import sys

from mailcourier.app import main

if __name__ == "__main__":
    sys.exit(main())
