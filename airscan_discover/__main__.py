"""
Main entry point for airscan-discover.
"""
import sys

from airscan_discover.app import main


def main_entry():
    """
    Runs a discovery and exits with its status.
    """
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
