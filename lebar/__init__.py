"""Script-driven status line generator for i3bar and swaybar.

This package runs user-defined scripts ("blocks"), renders their output
through templates and streams i3bar protocol status lines. Click events from
the bar are dispatched to per-block handler scripts.
"""

__version__ = "1.0.0"
