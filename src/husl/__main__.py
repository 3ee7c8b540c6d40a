"""Allow ``python -m husl``."""

from husl.cli import main

main()
