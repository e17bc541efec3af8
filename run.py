#!/usr/bin/env python3
"""
Token Ledger Entry Point

Starts the FastAPI server (port 8090 by default) around a ledger built from
TOKEN_LEDGER_* environment configuration.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from token_ledger.api import run_server
from token_ledger.api.auth import get_ledger_system
from token_ledger.config import get_config
from token_ledger.exceptions import InvalidConfiguration


if __name__ == "__main__":
    config = get_config()
    print("Starting Token Ledger...")
    print(f"Token: {config.token_name} ({config.token_symbol}), {config.token_decimals} decimals")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        # Build the ledger up front so configuration errors surface before serving
        get_ledger_system()
        run_server()
    except InvalidConfiguration as e:
        print(f"Invalid configuration: {e}")
        print("Set TOKEN_LEDGER_INITIAL_HOLDER to the account receiving the supply")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nShutting down Token Ledger...")
