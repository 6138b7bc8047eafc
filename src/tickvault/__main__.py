import sys

from tickvault.ingestion.main import cli

if __name__ == "__main__":
    sys.exit(cli())
