"""Entry point for running convox_installer as a module"""

from convox_installer.cli import main

if __name__ == "__main__":
    main()
