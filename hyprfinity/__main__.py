"""Run hyprfinity with `python -m hyprfinity`."""

from .command import main

main()
