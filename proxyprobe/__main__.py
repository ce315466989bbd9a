import sys

from proxyprobe.main import cli

sys.exit(cli())
