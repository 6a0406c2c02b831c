"""
Entry point for running the operator as a module.

Usage:
    python -m bitdsm_operator
"""

from bitdsm_operator.cli import main

if __name__ == "__main__":
    main()
