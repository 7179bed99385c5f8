"""Allow ``python -m growfluent``."""

from growfluent.cli.main import main

if __name__ == "__main__":
    main()
