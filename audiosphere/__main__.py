"""Allow ``python -m audiosphere``."""

from audiosphere.app import main

if __name__ == "__main__":
    main()
