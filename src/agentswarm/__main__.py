"""Entry point for ``python -m agentswarm``."""

from agentswarm.cli import main

if __name__ == "__main__":
    main()
