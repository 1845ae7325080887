"""System utility checks."""

from __future__ import annotations

import os


def resolve_program(name: str) -> str:
    """Resolve a program name as given, without searching ``$PATH``.

    Names without a slash are taken relative to the current directory.
    """
    if os.sep in name:
        return name
    return os.path.join(os.curdir, name)
