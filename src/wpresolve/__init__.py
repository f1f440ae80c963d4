"""
wpresolve - Core Package

Resolve a module request to the absolute file path a webpack build would
load for it, honoring the project's webpack.config.js resolve options.
"""

__version__ = "0.1.0"
__description__ = "Resolve a module request the way webpack would"
