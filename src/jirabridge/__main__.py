"""
jirabridge package entry point.

Allows running jirabridge as a module:
    python -m jirabridge
"""

from jirabridge.cli import main

if __name__ == "__main__":
    main()
