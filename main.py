import sys

from clavtarot.cli import main

if __name__ == "__main__":
    # Example: python main.py three --seed demo-seed --no-delay
    sys.exit(main())
