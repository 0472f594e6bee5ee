"""
Import Z-sliced label slabs into a remote volumetric store.
"""
import sys

from labelimport.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
