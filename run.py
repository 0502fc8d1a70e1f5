#!/usr/bin/env python3
"""
Retail Ledger Entry Point

Starts the interactive console against the configured snapshot files.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from retail_ledger.console import main


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nShutting down Retail Ledger...")
    except Exception as e:
        print(f"Error running ledger: {e}")
        sys.exit(1)
