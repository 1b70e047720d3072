"""Allow ``python -m linode_machine``."""

from linode_machine.cli.main import main

if __name__ == "__main__":
    main()
