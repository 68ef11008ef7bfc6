"""
Main entry point for running logtail from a source checkout.
"""

import os
import sys

# Add project root to PYTHONPATH so imports work when running this script directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from logtail.cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
