"""Run the deckstore CLI with ``python -m deckstore.cli``."""

from ._app import main

main()
