"""Run omni-installer as ``python -m omni_installer``."""

from .cli import main

main()
