"""Terminal front-end: argparse commands, Rich output, questionary prompts.

Outermost layer.  It wires ``config``, ``infra`` and ``core`` together
per command; nothing else in macvod imports from here.
"""
