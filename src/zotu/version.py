"""Release version and the `zotu --help` footer."""

from __future__ import annotations

import platform

__version__ = "0.3.0"

HELP_EXAMPLES = (
    "zotu import ~/Music",
    "zotu list --search beatles",
    "zotu play --view favorite --loop-mode random",
    "zotu --backend fake play",
)


def build_help_epilog() -> str:
    lines = ["Examples:"]
    lines.extend(f"  {example}" for example in HELP_EXAMPLES)
    lines.append("")
    lines.append(
        f"zotu {__version__} on Python {platform.python_version()} "
        f"({platform.system() or 'unknown OS'})"
    )
    return "\n".join(lines)
