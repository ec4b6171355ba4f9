#!/usr/bin/env python3
import sys
import os

# Add src to path so litescan package can be found
current_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.join(current_dir, 'src')
sys.path.insert(0, src_dir)

from server.main import create_app

if __name__ == "__main__":
    app = create_app(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Serving {app.config['LITESCAN_DB']} on http://localhost:5000")
    app.run(debug=True, host='0.0.0.0', port=5000)
