# quickseek Package
"""
Query-federation core of a desktop quick-launcher.

One query fans out to:
  - Applications: installed desktop entries
  - Files: the live file index (plocate / mdfind)
  - Shortcuts: user automation scripts
  - Calculator: arithmetic, currency and kinship answers
"""

__version__ = "0.1.0"
