"""Allow ``python -m presta.cli`` execution."""

from presta.cli.app import main

main()
