"""Allow ``python -m eabcert``."""

from eabcert.cli.main import main

main()
