"""
FILE: lumina/__main__.py
PURPOSE: Allow `python -m lumina` to run the CLI
"""

from lumina.cli.main import main

main()
