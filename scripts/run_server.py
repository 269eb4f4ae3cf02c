#!/usr/bin/env python3
"""Run the Flask development server."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enclave.web import create_app

if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("ENCLAVE_PORT", "5001"))
    print("\n" + "=" * 50)
    print("ENCLAVE")
    print("=" * 50)
    print("\nStarting development server...")
    print(f"Open http://localhost:{port} in your browser")
    print("Press Ctrl+C to stop\n")
    app.run(debug=True, host="0.0.0.0", port=port)
