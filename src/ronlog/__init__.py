"""
Ronlog - changelog fragments from git history, assembled into a RON log.

- ronlog.core: errors, logging, settings, atomic file IO
- ronlog.changelog: version parsing, commit harvesting, fragment building,
  rendering, merging and RONLOG assembly
"""

__version__ = "0.4.0"
