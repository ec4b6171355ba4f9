#!/usr/bin/env python3
import sys
import os

# Add src to path so litescan package can be found
current_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.join(current_dir, 'src')
sys.path.insert(0, src_dir)

if __name__ == "__main__":
    from litescan.cli import main
    sys.exit(main())
