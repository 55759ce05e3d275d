"""Run with: python -m panelswitch"""

from .cli import run

run()
