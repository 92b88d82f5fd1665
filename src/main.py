"""
AutoDBScan - SQL Server Instance Discovery Tool

Finds SQL Server instances on hosts, in IP ranges or in Active Directory and
rates how certain each finding is.
"""

import sys
from autodbscan.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
