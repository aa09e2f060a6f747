"""Allow ``python -m kbindex.cli`` execution."""

from kbindex.cli.index import main

main()
