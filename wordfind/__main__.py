"""
Allow "python -m wordfind".
"""
from . import main

if __name__ == "__main__":
    # pylint: disable=no-value-for-parameter
    main()
